"""Configuration management using Pydantic Settings"""

from typing import List, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Run configuration loaded from environment variables, validated once at start"""

    model_config = SettingsConfigDict(
        env_prefix="RECONCILER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Directory
    directory_api_base: str = "http://localhost:8001"
    directory_api_token: Optional[SecretStr] = None
    directory_search_base: Optional[str] = None
    http_timeout_seconds: float = 10.0

    # Policy
    inactivity_window_days: int = Field(45, gt=0)
    notification_lead_days: int = Field(15, ge=0)
    expiration_lead_days: int = Field(30, ge=0)
    expiration_handling_enabled: bool = False
    protection_marker: str = Field("//ACCOUNT_PROTECTED//", min_length=1)

    # Mail
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_use_ssl: bool = False
    smtp_username: Optional[str] = None
    smtp_password: Optional[SecretStr] = None
    smtp_timeout_seconds: float = 30.0
    sender_address: str = ""
    admin_recipients: List[str] = Field(default_factory=list)

    # Templates
    template_dir: Optional[str] = None  # Packaged templates when unset
    logo_path: Optional[str] = None

    # Report identity and support contact, passed through to templates verbatim
    report_name: str = "Inactive Account Reconciler"
    support_name: str = "IT Service Desk"
    support_email: str = ""
    support_phone: str = ""

    # Run switches
    dry_run: bool = False
    debug: bool = False

    # Service
    service_name: str = "lifecycle-reconciler"
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    log_level: str = "INFO"
    metrics_textfile: Optional[str] = None  # node-exporter textfile collector target

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level.upper()


def load_settings(**overrides) -> Settings:
    """Build settings from the environment, with explicit values taking precedence.

    Overrides whose value is None are ignored so unset CLI flags fall through
    to the environment.
    """
    return Settings(**{key: value for key, value in overrides.items() if value is not None})
