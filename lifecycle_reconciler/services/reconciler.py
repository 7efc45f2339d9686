"""Run orchestration - query, classify, protect, execute, aggregate, report"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from lifecycle_reconciler.config import Settings
from lifecycle_reconciler.domain.classifier import classify
from lifecycle_reconciler.domain.exceptions import PreconditionMissingError
from lifecycle_reconciler.domain.models import Account, RunSummary, Thresholds
from lifecycle_reconciler.domain.ports import AccountQuery, DirectoryGateway, Mailer, TemplateRenderer
from lifecycle_reconciler.domain.protection import apply_protection
from lifecycle_reconciler.domain.thresholds import compute_thresholds
from lifecycle_reconciler.infrastructure.observability.logging import log_outcome
from lifecycle_reconciler.infrastructure.observability.metrics import (
    last_success_gauge,
    record_outcome,
    run_duration_histogram,
)
from lifecycle_reconciler.infrastructure.clients.directory import DirectoryClient
from lifecycle_reconciler.infrastructure.clients.mail import SmtpMailer
from lifecycle_reconciler.infrastructure.templates import REQUIRED_TEMPLATES, JinjaTemplateRenderer
from lifecycle_reconciler.services.executor import LifecycleExecutor
from lifecycle_reconciler.services.reporting import AdminReporter, RunAggregator

logger = logging.getLogger(__name__)


class LifecycleReconciler:
    """One sequential pass over the directory per call to run()"""

    def __init__(
        self,
        settings: Settings,
        directory: DirectoryGateway,
        mailer: Mailer,
        templates: TemplateRenderer,
    ):
        self.settings = settings
        self.directory = directory
        self.mailer = mailer
        self.templates = templates
        self.reporter = AdminReporter(settings, mailer, templates)

    def thresholds(self, now: Optional[datetime] = None) -> Thresholds:
        """Raises InvalidPolicyError for contradictory policy"""
        return compute_thresholds(
            now or datetime.now(timezone.utc),
            self.settings.inactivity_window_days,
            self.settings.notification_lead_days,
            self.settings.expiration_lead_days if self.settings.expiration_handling_enabled else None,
        )

    def check_preconditions(self) -> None:
        """
        Raises:
            PreconditionMissingError: missing recipients/sender, unresolvable
                templates, or unreachable directory
        """
        if not self.settings.admin_recipients:
            raise PreconditionMissingError("No administrator recipients configured")
        if not self.settings.sender_address:
            raise PreconditionMissingError("No sender address configured")
        self.templates.require(*REQUIRED_TEMPLATES)
        self.directory.check_available()

    def fetch_candidates(self, thresholds: Thresholds) -> List[Account]:
        """
        Enabled accounts inside the notice window, plus enabled accounts with a
        real expiration when expiration handling is on. Directory order is kept,
        duplicates are dropped.

        Raises:
            DirectoryQueryError: the directory could not be queried
        """
        expiration_on = self.settings.expiration_handling_enabled
        queries = [
            AccountQuery(
                enabled=True,
                last_activity_before=thresholds.notification_cutoff,
                has_expiration=False if expiration_on else None,
            )
        ]
        if expiration_on:
            queries.append(AccountQuery(enabled=True, has_expiration=True))

        seen = set()
        accounts: List[Account] = []
        for query in queries:
            for account in self.directory.query_accounts(query):
                if account.account_id in seen:
                    continue
                seen.add(account.account_id)
                accounts.append(account)
        return accounts

    def run(self, now: Optional[datetime] = None, dry_run: Optional[bool] = None) -> RunSummary:
        """
        Execute one reconciliation pass.

        Fatal errors (InvalidPolicyError, PreconditionMissingError,
        DirectoryQueryError on the initial query, TemplateRenderError on the
        admin report) propagate before or after the per-account loop; nothing
        raised for a single account stops the loop.
        """
        start_time = time.monotonic()
        dry_run = self.settings.dry_run if dry_run is None else dry_run
        thresholds = self.thresholds(now)
        self.check_preconditions()

        run_id = str(uuid.uuid4())
        logger.info(
            "Run started",
            extra={
                "run_id": run_id,
                "dry_run": dry_run,
                "inactivity_window_days": thresholds.inactivity_window_days,
                "notification_lead_days": thresholds.notification_lead_days,
                "expiration_handling": self.settings.expiration_handling_enabled,
                "deactivation_cutoff": thresholds.deactivation_cutoff.isoformat(),
                "notification_cutoff": thresholds.notification_cutoff.isoformat(),
            },
        )

        accounts = self.fetch_candidates(thresholds)
        logger.info(f"{len(accounts)} candidate accounts", extra={"run_id": run_id})

        executor = LifecycleExecutor(self.settings, self.directory, self.mailer, self.templates, thresholds)
        aggregator = RunAggregator(run_id, thresholds.now, dry_run)

        for account in accounts:
            result = classify(account, thresholds, self.settings.expiration_handling_enabled)
            result = apply_protection(account, result, self.settings.protection_marker)
            outcome = executor.execute(account, result, dry_run)
            aggregator.add(outcome)
            record_outcome(outcome)
            log_outcome(run_id, outcome)

        summary = aggregator.finish(datetime.now(timezone.utc))
        self.reporter.send(summary)

        run_duration_histogram.observe(time.monotonic() - start_time)
        last_success_gauge.set_to_current_time()
        logger.info(
            "Run completed",
            extra={
                "run_id": run_id,
                "processed": summary.processed,
                "notified": summary.notified,
                "deactivated": summary.deactivated,
                "errors": summary.errors,
                "report_sent": summary.report_sent,
            },
        )
        return summary


def build_reconciler(settings: Settings) -> LifecycleReconciler:
    """Wire the reconciler to the HTTP directory, SMTP relay and template store"""
    return LifecycleReconciler(
        settings,
        directory=DirectoryClient(settings),
        mailer=SmtpMailer(settings),
        templates=JinjaTemplateRenderer(settings.template_dir),
    )
