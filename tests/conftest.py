"""Pytest fixtures for testing"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Set

import pytest

from lifecycle_reconciler.config import Settings
from lifecycle_reconciler.domain.classifier import has_real_expiration
from lifecycle_reconciler.domain.exceptions import (
    DirectoryMutationError,
    DirectoryQueryError,
    MailSendError,
    PreconditionMissingError,
)
from lifecycle_reconciler.domain.models import Account, Thresholds
from lifecycle_reconciler.domain.ports import AccountQuery
from lifecycle_reconciler.domain.thresholds import compute_thresholds
from lifecycle_reconciler.infrastructure.templates import JinjaTemplateRenderer
from lifecycle_reconciler.utils.date_utils import EPOCH

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


class FakeDirectory:
    """In-memory directory honoring the same filter semantics as the HTTP contract"""

    def __init__(self, accounts: Iterable[Account] = (), available: bool = True):
        self.accounts: Dict[str, Account] = {account.account_id: account for account in accounts}
        self.available = available
        self.fail_query = False
        self.fail_get: Set[str] = set()
        self.fail_update: Set[str] = set()
        self.queries: List[AccountQuery] = []
        self.updates: List[tuple] = []

    def check_available(self) -> None:
        if not self.available:
            raise PreconditionMissingError("Directory unreachable")

    def query_accounts(self, query: AccountQuery) -> List[Account]:
        self.queries.append(query)
        if self.fail_query:
            raise DirectoryQueryError("Directory query error: 500")
        matches = []
        for account in self.accounts.values():
            if query.enabled is not None and account.enabled != query.enabled:
                continue
            if query.last_activity_before is not None:
                if (account.last_activity_at or EPOCH) > query.last_activity_before:
                    continue
            if query.has_expiration is not None and has_real_expiration(account) != query.has_expiration:
                continue
            matches.append(account)
        return matches

    def get_account(self, account_id: str) -> Account:
        if account_id in self.fail_get:
            raise DirectoryQueryError(f"Directory read error for {account_id}: 503")
        return self.accounts[account_id]

    def set_enabled_and_description(self, account_id: str, enabled: bool, description: str) -> None:
        if account_id in self.fail_update:
            raise DirectoryMutationError(f"Directory update error for {account_id}: 403")
        self.updates.append((account_id, enabled, description))
        self.accounts[account_id] = replace(self.accounts[account_id], enabled=enabled, description=description)


class RecordingMailer:
    """Captures messages instead of delivering them"""

    def __init__(self, fail_for: Iterable[str] = ()):
        self.fail_for = set(fail_for)
        self.sent: List[dict] = []

    def send(self, to, subject, html_body, inline_image=None) -> None:
        if self.fail_for.intersection(to):
            raise MailSendError(f"SMTP delivery to {', '.join(to)} failed: 550 mailbox unavailable")
        self.sent.append({"to": list(to), "subject": subject, "body": html_body, "inline_image": inline_image})

    def sent_to(self, address: str) -> List[dict]:
        return [message for message in self.sent if address in message["to"]]


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Settings isolated from any .env file, with mail and report fields filled in"""

    def _make(**overrides) -> Settings:
        values = {
            "inactivity_window_days": 45,
            "notification_lead_days": 15,
            "expiration_lead_days": 30,
            "sender_address": "it-noreply@example.com",
            "admin_recipients": ["identity-ops@example.com"],
            "support_email": "servicedesk@example.com",
            "support_phone": "+1 555 0100",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def thresholds(now, settings) -> Thresholds:
    return compute_thresholds(
        now,
        settings.inactivity_window_days,
        settings.notification_lead_days,
        settings.expiration_lead_days,
    )


@pytest.fixture
def make_account(now) -> Callable[..., Account]:
    """Build accounts relative to NOW: inactive_days=None means never authenticated"""

    def _make(
        account_id: str = "jdoe",
        inactive_days: Optional[int] = 10,
        expires_in_days: Optional[int] = None,
        **fields,
    ) -> Account:
        values = {
            "display_name": "Jane Doe",
            "email_address": f"{account_id}@example.com",
            "last_activity_at": now - timedelta(days=inactive_days) if inactive_days is not None else None,
            "expires_at": now + timedelta(days=expires_in_days) if expires_in_days is not None else None,
            "description": "Finance analyst",
            "enabled": True,
        }
        # Explicit field values win over the day offsets
        values.update(fields)
        return Account(account_id=account_id, **values)

    return _make


@pytest.fixture
def templates() -> JinjaTemplateRenderer:
    return JinjaTemplateRenderer()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def make_directory() -> Callable[..., FakeDirectory]:
    return FakeDirectory


@pytest.fixture
def make_mailer() -> Callable[..., RecordingMailer]:
    return RecordingMailer
