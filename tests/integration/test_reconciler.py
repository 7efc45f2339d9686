"""Integration tests for a full reconciliation pass"""

import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient
from lifecycle_reconciler.domain.exceptions import (
    DirectoryQueryError,
    InvalidPolicyError,
    PreconditionMissingError,
)
from lifecycle_reconciler.domain.models import Category, OutcomeStatus
from lifecycle_reconciler.domain.protection import PROTECTION_MARKER
from lifecycle_reconciler.infrastructure.clients.directory import DirectoryClient
from lifecycle_reconciler.services.reconciler import LifecycleReconciler
from lifecycle_reconciler.services.reporting import NO_MATCH_MESSAGE
from mock_services.directory_server.main import create_app as create_directory_app


@pytest.fixture
def population(make_account):
    """One account per lifecycle situation, in directory order"""
    return [
        make_account("stale", inactive_days=50),
        make_account("warned", inactive_days=40),
        make_account("cutoff", inactive_days=45),
        make_account("vip", inactive_days=100, description=f"CFO {PROTECTION_MARKER}"),
        make_account("noemail", inactive_days=45, email_address=None),
        make_account("never", inactive_days=None),
        make_account("recent", inactive_days=2),
        make_account("contractor", inactive_days=100, expires_in_days=10),
        make_account("expired", inactive_days=100, expires_in_days=-5),
    ]


def make_reconciler(settings, directory, mailer, templates):
    return LifecycleReconciler(settings, directory, mailer, templates)


def test_full_run(settings, make_directory, mailer, templates, population, now):
    directory = make_directory(population)

    summary = make_reconciler(settings, directory, mailer, templates).run(now=now)

    outcomes = {o.account_id: o for o in summary.outcomes}
    # "recent" is outside the notice window and never queried
    assert list(outcomes) == ["stale", "warned", "cutoff", "vip", "noemail", "never", "contractor", "expired"]

    # Expiration handling is off, so expiring accounts follow the inactivity policy
    disabled = {update[0] for update in directory.updates}
    assert disabled == {"stale", "cutoff", "noemail", "never", "contractor", "expired"}
    assert outcomes["vip"].category is Category.PROTECTED
    assert directory.accounts["vip"].enabled is True

    notices = [m for m in mailer.sent if m["to"] != ["identity-ops@example.com"]]
    assert sorted(m["to"][0] for m in notices) == ["cutoff@example.com", "warned@example.com"]

    reports = mailer.sent_to("identity-ops@example.com")
    assert len(reports) == 1
    assert summary.report_sent is True
    assert summary.errors == 0


def test_run_with_expiration_handling(make_settings, make_directory, mailer, templates, population, now):
    settings = make_settings(expiration_handling_enabled=True)
    directory = make_directory(population)

    summary = make_reconciler(settings, directory, mailer, templates).run(now=now)

    outcomes = {o.account_id: o for o in summary.outcomes}
    assert len(directory.queries) == 2
    assert outcomes["contractor"].category is Category.EXPIRING_SOON
    assert outcomes["expired"].category is Category.EXPIRED_BUT_ENABLED
    assert outcomes["expired"].status is OutcomeStatus.FLAGGED
    assert "contractor" not in {u[0] for u in directory.updates}
    assert "expired" not in {u[0] for u in directory.updates}
    assert directory.accounts["expired"].enabled is True


def test_dry_run_changes_nothing(settings, make_directory, mailer, templates, population, now):
    directory = make_directory(population)

    summary = make_reconciler(settings, directory, mailer, templates).run(now=now, dry_run=True)

    assert directory.updates == []
    assert all(account.enabled for account in directory.accounts.values())
    # Neither notices nor the admin report are transmitted
    assert mailer.sent == []
    assert summary.report_sent is False
    assert summary.deactivated == 6
    assert summary.notified == 2


def test_per_account_failures_do_not_stop_the_run(settings, make_directory, make_mailer, templates, population, now):
    directory = make_directory(population)
    directory.fail_update.add("stale")
    mailer = make_mailer(fail_for=["warned@example.com"])

    summary = make_reconciler(settings, directory, mailer, templates).run(now=now)

    outcomes = {o.account_id: o for o in summary.outcomes}
    assert outcomes["stale"].status is OutcomeStatus.ERROR
    assert outcomes["warned"].status is OutcomeStatus.ERROR
    assert outcomes["never"].deactivated is True
    assert summary.errors == 2
    report = mailer.sent_to("identity-ops@example.com")[0]
    assert "Not disabled" in report["body"]


def test_empty_run_still_reports(settings, make_directory, mailer, templates, now):
    """Scenario: zero matching accounts"""
    summary = make_reconciler(settings, make_directory([]), mailer, templates).run(now=now)

    assert summary.processed == 0
    assert len(mailer.sent) == 1
    assert NO_MATCH_MESSAGE in mailer.sent[0]["body"]


def test_invalid_policy_aborts_before_directory(make_settings, make_directory, mailer, templates, now):
    directory = make_directory([])
    settings = make_settings(inactivity_window_days=10, notification_lead_days=20)

    with pytest.raises(InvalidPolicyError):
        make_reconciler(settings, directory, mailer, templates).run(now=now)

    assert directory.queries == []
    assert mailer.sent == []


@pytest.mark.parametrize("missing", ["admin_recipients", "sender_address"])
def test_missing_configuration_aborts(make_settings, make_directory, mailer, templates, now, missing):
    directory = make_directory([])
    settings = make_settings(**{missing: [] if missing == "admin_recipients" else ""})

    with pytest.raises(PreconditionMissingError):
        make_reconciler(settings, directory, mailer, templates).run(now=now)

    assert directory.queries == []


def test_unavailable_directory_aborts(settings, make_directory, mailer, templates, now):
    with pytest.raises(PreconditionMissingError):
        make_reconciler(settings, make_directory([], available=False), mailer, templates).run(now=now)

    assert mailer.sent == []


def test_directory_query_failure_aborts(settings, make_directory, mailer, templates, now):
    directory = make_directory([])
    directory.fail_query = True

    with pytest.raises(DirectoryQueryError):
        make_reconciler(settings, directory, mailer, templates).run(now=now)

    assert mailer.sent == []


@pytest.mark.integration
def test_run_against_mock_directory_server(settings, mailer, templates):
    """End to end over HTTP against the mock directory service"""
    now = datetime.now(timezone.utc)
    records = [
        {
            "account_id": "stale",
            "display_name": "Stale User",
            "email_address": "stale@example.com",
            "last_activity_at": (now - timedelta(days=60)).isoformat(),
            "expires_at": None,
            "description": "Ops",
            "enabled": True,
        },
        {
            "account_id": "recent",
            "display_name": "Recent User",
            "email_address": "recent@example.com",
            "last_activity_at": (now - timedelta(days=1)).isoformat(),
            "expires_at": None,
            "description": "Ops",
            "enabled": True,
        },
        {
            "account_id": "svc",
            "display_name": "Service",
            "email_address": None,
            "last_activity_at": None,
            "expires_at": 9223372036854775807,
            "description": PROTECTION_MARKER,
            "enabled": True,
        },
    ]
    directory_app = create_directory_app(records)
    directory = DirectoryClient(settings, http_client=TestClient(directory_app))

    summary = LifecycleReconciler(settings, directory, mailer, templates).run(now=now)

    store = directory_app.state.store
    assert [o.account_id for o in summary.outcomes] == ["stale", "svc"]
    assert store["stale"]["enabled"] is False
    assert "| Disabled at " in store["stale"]["description"]
    assert store["svc"]["enabled"] is True
    assert store["recent"]["enabled"] is True
