"""Run aggregation and the administrator report"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Tuple

from lifecycle_reconciler.config import Settings
from lifecycle_reconciler.domain.exceptions import MailSendError
from lifecycle_reconciler.domain.models import Action, Category, Outcome, RunSummary
from lifecycle_reconciler.domain.ports import Mailer, TemplateRenderer
from lifecycle_reconciler.infrastructure.clients.mail import INLINE_IMAGE_CID
from lifecycle_reconciler.infrastructure.templates import ADMIN_REPORT
from lifecycle_reconciler.utils.date_utils import format_timestamp

logger = logging.getLogger(__name__)

CATEGORY_LABELS = {
    Category.INACTIVE: "Inactive",
    Category.EXPIRING_SOON: "Expiring soon",
    Category.EXPIRED_BUT_ENABLED: "Expired but enabled",
    Category.PROTECTED: "Protected",
    Category.COMPLIANT: "Compliant",
}

NO_MATCH_MESSAGE = "No accounts matched the policy"


def describe_outcome(outcome: Outcome) -> str:
    """One human-readable line for the report's result column"""
    parts: List[str] = []
    if outcome.category is Category.PROTECTED:
        parts.append("Protected; exempt from policy")
    elif outcome.category is Category.EXPIRING_SOON:
        parts.append(f"Expires in {outcome.days_until_expiration} days")
    elif outcome.category is Category.EXPIRED_BUT_ENABLED:
        parts.append("Expired but still enabled; review manually")
    elif outcome.action is Action.NONE:
        parts.append("No action")

    if outcome.notification_skipped:
        parts.append("No email address; notice skipped")
    elif outcome.notified:
        parts.append("Notice simulated" if outcome.dry_run else "Notice sent")
    if outcome.already_disabled:
        parts.append("Already disabled")
    elif outcome.deactivated:
        parts.append("Would be disabled" if outcome.dry_run else "Disabled")

    parts.extend(outcome.errors)
    return "; ".join(parts) or "Nothing done"


@dataclass(frozen=True)
class ReportRow:
    account_id: str
    display_name: str
    email_address: str
    last_activity: str
    days_inactive: str
    category: str
    action: str
    status: str
    result: str

    @classmethod
    def from_outcome(cls, outcome: Outcome) -> "ReportRow":
        return cls(
            account_id=outcome.account_id,
            display_name=outcome.display_name or "",
            email_address=outcome.email_address or "",
            last_activity=format_timestamp(outcome.last_activity_at),
            days_inactive=str(outcome.days_inactive),
            category=CATEGORY_LABELS[outcome.category],
            action=outcome.action.value,
            status=outcome.status.value,
            result=describe_outcome(outcome),
        )

    @classmethod
    def empty(cls) -> "ReportRow":
        return cls(
            account_id="-",
            display_name="",
            email_address="",
            last_activity="",
            days_inactive="",
            category="",
            action="",
            status="",
            result=NO_MATCH_MESSAGE,
        )


@dataclass(frozen=True)
class ReportPayload:
    subject: str
    counts: List[Tuple[str, int]]
    rows: List[ReportRow]
    dry_run: bool


class RunAggregator:
    """Sole owner of the run's summary; outcomes are kept in processing order"""

    def __init__(self, run_id: str, started_at: datetime, dry_run: bool):
        self.summary = RunSummary(run_id=run_id, started_at=started_at, dry_run=dry_run)

    def add(self, outcome: Outcome) -> None:
        self.summary.outcomes.append(outcome)
        self.summary.category_counts[outcome.category] += 1
        self.summary.status_counts[outcome.status] += 1

    def finish(self, finished_at: datetime) -> RunSummary:
        self.summary.finished_at = finished_at
        return self.summary


def build_report(summary: RunSummary, settings: Settings) -> ReportPayload:
    """Counts + one row per processed account; failed accounts are always listed"""
    prefix = "[DRY RUN] " if summary.dry_run else ""
    subject = (
        f"{prefix}{settings.report_name}: {summary.processed} accounts processed, "
        f"{summary.deactivated} disabled, {summary.errors} errors"
    )

    counts: List[Tuple[str, int]] = [("Processed", summary.processed)]
    counts.extend((label, summary.category_counts[category]) for category, label in CATEGORY_LABELS.items())
    counts.extend(
        [
            ("Notified", summary.notified),
            ("Disabled", summary.deactivated),
            ("Errors", summary.errors),
        ]
    )

    rows = [ReportRow.from_outcome(outcome) for outcome in summary.outcomes] or [ReportRow.empty()]
    return ReportPayload(subject=subject, counts=counts, rows=rows, dry_run=summary.dry_run)


class AdminReporter:
    """Renders and sends the run report to administrators, once per run"""

    def __init__(self, settings: Settings, mailer: Mailer, templates: TemplateRenderer):
        self.settings = settings
        self.mailer = mailer
        self.templates = templates

    def render(self, summary: RunSummary, payload: ReportPayload) -> str:
        """Raises TemplateRenderError; there is no report without it"""
        inline_image = self.settings.logo_path
        return self.templates.render(
            ADMIN_REPORT,
            {
                "subject": payload.subject,
                "counts": payload.counts,
                "rows": payload.rows,
                "dry_run": payload.dry_run,
                "run_id": summary.run_id,
                "report_name": self.settings.report_name,
                "current_timestamp": format_timestamp(summary.finished_at or summary.started_at),
                "support_name": self.settings.support_name,
                "support_email": self.settings.support_email,
                "support_phone": self.settings.support_phone,
                "logo_cid": INLINE_IMAGE_CID if inline_image else "",
            },
        )

    def send(self, summary: RunSummary) -> ReportPayload:
        """
        Render and send the report.

        In dry-run mode the report is rendered and logged but not transmitted.
        A delivery failure is logged and leaves summary.report_sent False.
        """
        payload = build_report(summary, self.settings)
        body = self.render(summary, payload)
        inline_image = Path(self.settings.logo_path) if self.settings.logo_path else None

        if summary.dry_run:
            logger.info(
                f"Dry run: admin report '{payload.subject}' not sent",
                extra={"run_id": summary.run_id, "recipients": list(self.settings.admin_recipients)},
            )
            return payload

        try:
            self.mailer.send(self.settings.admin_recipients, payload.subject, body, inline_image)
        except MailSendError as e:
            logger.error(f"Admin report not delivered: {e}", extra={"run_id": summary.run_id})
            return payload

        summary.report_sent = True
        logger.info(
            "Admin report sent",
            extra={"run_id": summary.run_id, "recipients": list(self.settings.admin_recipients)},
        )
        return payload
