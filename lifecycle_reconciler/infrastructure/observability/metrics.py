"""Prometheus metrics for monitoring deactivation volume, notices and failures"""

import logging

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, write_to_textfile

from lifecycle_reconciler.domain.models import Outcome

logger = logging.getLogger(__name__)

# Account metrics
accounts_processed_counter = Counter(
    "reconciler_accounts_processed_total",
    "Accounts evaluated by the reconciler",
    ["category", "action"],
)

account_errors_counter = Counter(
    "reconciler_account_errors_total",
    "Per-account failures recovered during a run",
    ["operation"],  # directory_read | directory_write | mail | template
)

notifications_counter = Counter(
    "reconciler_notifications_total",
    "User notices by result",
    ["result"],  # sent | simulated | skipped_no_address | failed
)

deactivations_counter = Counter(
    "reconciler_deactivations_total",
    "Accounts disabled",
    ["mode"],  # live | dry_run
)

# Run metrics
run_duration_histogram = Histogram(
    "reconciler_run_duration_seconds",
    "Wall time of a full reconciliation run",
    buckets=[1, 5, 15, 30, 60, 120, 300, 600],
)

last_success_gauge = Gauge(
    "reconciler_last_success_timestamp_seconds",
    "Unix time of the last run that completed its pass",
)


def record_outcome(outcome: Outcome) -> None:
    """Record per-account metrics for one outcome"""
    accounts_processed_counter.labels(category=outcome.category.value, action=outcome.action.value).inc()

    if outcome.action.notifies:
        if outcome.notification_skipped:
            result = "skipped_no_address"
        elif outcome.notified:
            result = "simulated" if outcome.dry_run else "sent"
        else:
            result = "failed"
        notifications_counter.labels(result=result).inc()

    if outcome.deactivated:
        deactivations_counter.labels(mode="dry_run" if outcome.dry_run else "live").inc()


def record_error(operation: str) -> None:
    account_errors_counter.labels(operation=operation).inc()


def export_textfile(path: str) -> None:
    """Write the registry for the node-exporter textfile collector; failures are logged only"""
    try:
        write_to_textfile(path, REGISTRY)
    except OSError as e:
        logger.error(f"Could not write metrics textfile {path}: {e}")
