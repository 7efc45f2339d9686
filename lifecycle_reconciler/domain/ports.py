"""Collaborator protocols the services depend on"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Sequence

from lifecycle_reconciler.domain.models import Account


@dataclass(frozen=True)
class AccountQuery:
    """Directory filter: every field left as None is not constrained"""

    enabled: Optional[bool] = True
    last_activity_before: Optional[datetime] = None  # Inclusive; never-authenticated accounts match
    has_expiration: Optional[bool] = None


class DirectoryGateway(Protocol):
    def check_available(self) -> None:
        ...

    def query_accounts(self, query: AccountQuery) -> list[Account]:
        ...

    def get_account(self, account_id: str) -> Account:
        ...

    def set_enabled_and_description(self, account_id: str, enabled: bool, description: str) -> None:
        ...


class Mailer(Protocol):
    def send(
        self,
        to: Sequence[str],
        subject: str,
        html_body: str,
        inline_image: Optional[Path] = None,
    ) -> None:
        ...


class TemplateRenderer(Protocol):
    def render(self, template_id: str, variables: Mapping[str, Any]) -> str:
        ...

    def require(self, *template_ids: str) -> None:
        ...
