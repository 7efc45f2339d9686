"""Integration tests for the command line entry point"""

import pytest
from lifecycle_reconciler import cli
from lifecycle_reconciler.services.reconciler import LifecycleReconciler

BASE_ARGS = ["--admin", "identity-ops@example.com", "--sender", "it-noreply@example.com"]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    for name in ("RECONCILER_ADMIN_RECIPIENTS", "RECONCILER_SENDER_ADDRESS", "RECONCILER_METRICS_TEXTFILE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)


@pytest.fixture
def directory(make_directory, make_account):
    return make_directory([make_account("stale", inactive_days=50), make_account("warned", inactive_days=40)])


@pytest.fixture
def wired(monkeypatch, directory, mailer, templates):
    """Route build_reconciler to in-memory collaborators and keep the settings it received"""
    captured = {}

    def _build(settings):
        captured["settings"] = settings
        return LifecycleReconciler(settings, directory, mailer, templates)

    monkeypatch.setattr(cli, "build_reconciler", _build)
    return captured


def test_successful_run_exits_zero(wired, directory, mailer):
    assert cli.main(BASE_ARGS) == cli.EXIT_OK

    assert directory.accounts["stale"].enabled is False
    assert len(mailer.sent_to("identity-ops@example.com")) == 1


def test_per_account_errors_still_exit_zero(wired, directory):
    directory.fail_update.add("stale")

    assert cli.main(BASE_ARGS) == cli.EXIT_OK


def test_flags_reach_settings(wired):
    cli.main(BASE_ARGS + ["--inactivity-days", "60", "--notify-days", "10", "--dry-run", "--handle-expiration"])

    settings = wired["settings"]
    assert settings.inactivity_window_days == 60
    assert settings.notification_lead_days == 10
    assert settings.dry_run is True
    assert settings.expiration_handling_enabled is True
    assert settings.admin_recipients == ["identity-ops@example.com"]


def test_dry_run_flag_changes_nothing(wired, directory, mailer):
    assert cli.main(BASE_ARGS + ["--dry-run"]) == cli.EXIT_OK

    assert directory.updates == []
    assert mailer.sent == []


def test_contradictory_policy_exits_two(wired, directory):
    code = cli.main(BASE_ARGS + ["--inactivity-days", "10", "--notify-days", "20"])

    assert code == cli.EXIT_INVALID_CONFIG
    assert directory.queries == []


def test_out_of_range_setting_exits_two(wired, capsys):
    assert cli.main(BASE_ARGS + ["--inactivity-days", "0"]) == cli.EXIT_INVALID_CONFIG

    assert "Invalid configuration" in capsys.readouterr().err
    assert "settings" not in wired


def test_missing_admin_recipients_exits_one(wired, directory, mailer):
    assert cli.main(["--sender", "it-noreply@example.com"]) == cli.EXIT_FAILED

    assert directory.queries == []
    assert mailer.sent == []


def test_directory_failure_exits_one(wired, directory):
    directory.fail_query = True

    assert cli.main(BASE_ARGS) == cli.EXIT_FAILED


def test_metrics_textfile_written(wired, monkeypatch, tmp_path):
    target = tmp_path / "reconciler.prom"
    monkeypatch.setenv("RECONCILER_METRICS_TEXTFILE", str(target))

    assert cli.main(BASE_ARGS) == cli.EXIT_OK

    assert "reconciler_accounts_processed_total" in target.read_text()


def test_metrics_textfile_written_on_failure(wired, directory, monkeypatch, tmp_path):
    target = tmp_path / "reconciler.prom"
    monkeypatch.setenv("RECONCILER_METRICS_TEXTFILE", str(target))
    directory.available = False

    assert cli.main(BASE_ARGS) == cli.EXIT_FAILED

    assert target.exists()
