"""Lifecycle executor - applies recommended actions against the directory and mail"""

import logging
from pathlib import Path
from typing import Dict, Optional

from lifecycle_reconciler.config import Settings
from lifecycle_reconciler.domain.exceptions import (
    DirectoryError,
    DirectoryMutationError,
    MailSendError,
    TemplateRenderError,
)
from lifecycle_reconciler.domain.models import Account, Action, Category, ClassificationResult, Outcome, Thresholds
from lifecycle_reconciler.domain.ports import DirectoryGateway, Mailer, TemplateRenderer
from lifecycle_reconciler.domain.protection import annotate_deactivation, is_protected
from lifecycle_reconciler.infrastructure.clients.mail import INLINE_IMAGE_CID
from lifecycle_reconciler.infrastructure.observability.metrics import record_error
from lifecycle_reconciler.infrastructure.templates import NOTICE_DEACTIVATED, NOTICE_PENDING
from lifecycle_reconciler.utils.date_utils import format_timestamp

logger = logging.getLogger(__name__)


class LifecycleExecutor:
    """
    Single mutator path for accounts.

    Each account runs to completion before the next one. Failures are caught per
    operation and recorded on the Outcome: a failed notice never blocks the
    deactivation step, and nothing raised here aborts the run. Deactivation
    runs before the zero-day notice so that notice is never sent for an
    account left enabled.
    """

    def __init__(
        self,
        settings: Settings,
        directory: DirectoryGateway,
        mailer: Mailer,
        templates: TemplateRenderer,
        thresholds: Thresholds,
    ):
        self.settings = settings
        self.directory = directory
        self.mailer = mailer
        self.templates = templates
        self.thresholds = thresholds
        self.inline_image: Optional[Path] = Path(settings.logo_path) if settings.logo_path else None

    def execute(self, account: Account, result: ClassificationResult, dry_run: bool) -> Outcome:
        outcome = Outcome.for_account(account, result, dry_run)
        action = result.recommended_action

        if action in (Action.NONE, Action.FLAG):
            logger.debug(
                f"No directory change for {account.account_id}",
                extra={"account_id": account.account_id, "category": result.category.value},
            )
            return outcome

        if action.deactivates:
            self._deactivate(account, outcome, dry_run)
            if outcome.action is Action.NONE:
                return outcome

        if action.notifies:
            # The "disabled today" notice only goes out for an account this run disabled
            if action.deactivates and not outcome.deactivated:
                logger.info(
                    f"Disabled notice withheld for {account.account_id}: account not disabled by this run",
                    extra={"account_id": account.account_id},
                )
                return outcome
            self._notify(account, result, outcome, dry_run)

        return outcome

    def notice_variables(self, account: Account, result: ClassificationResult) -> Dict[str, str]:
        return {
            "display_name": account.label,
            "last_activity": format_timestamp(account.last_activity_at),
            "days_inactive": str(result.days_inactive),
            "days_remaining": str(max(result.days_until_deactivation, 0)),
            "inactivity_window_days": str(self.thresholds.inactivity_window_days),
            "report_name": self.settings.report_name,
            "current_timestamp": format_timestamp(self.thresholds.now),
            "support_name": self.settings.support_name,
            "support_email": self.settings.support_email,
            "support_phone": self.settings.support_phone,
            "logo_cid": INLINE_IMAGE_CID if self.inline_image else "",
        }

    def _notify(self, account: Account, result: ClassificationResult, outcome: Outcome, dry_run: bool) -> None:
        if not account.email_address:
            outcome.notification_skipped = True
            logger.warning(
                f"No email address for {account.account_id}; notice skipped",
                extra={"account_id": account.account_id},
            )
            return

        if result.days_until_deactivation <= 0:
            template_id = NOTICE_DEACTIVATED
            subject = "Your account has been disabled due to inactivity"
        else:
            template_id = NOTICE_PENDING
            subject = f"Your account will be disabled in {result.days_until_deactivation} days"

        try:
            body = self.templates.render(template_id, self.notice_variables(account, result))
        except TemplateRenderError as e:
            record_error("template")
            outcome.errors.append(f"Notice not rendered: {e}")
            logger.error(f"Notice render failed for {account.account_id}: {e}", extra={"account_id": account.account_id})
            return

        if dry_run:
            outcome.notified = True
            logger.info(
                f"Dry run: notice '{template_id}' to {account.email_address} not sent",
                extra={"account_id": account.account_id},
            )
            return

        try:
            self.mailer.send([account.email_address], subject, body, self.inline_image)
        except MailSendError as e:
            record_error("mail")
            outcome.errors.append(f"Notice not sent: {e}")
            logger.error(f"Notice send failed for {account.account_id}: {e}", extra={"account_id": account.account_id})
            return

        outcome.notified = True
        logger.info(f"Notice '{template_id}' sent to {account.email_address}", extra={"account_id": account.account_id})

    def _deactivate(self, account: Account, outcome: Outcome, dry_run: bool) -> None:
        try:
            current = self.directory.get_account(account.account_id)
        except DirectoryError as e:
            record_error("directory_read")
            outcome.errors.append(f"Current state not read: {e}")
            logger.error(f"Re-read failed for {account.account_id}: {e}", extra={"account_id": account.account_id})
            return

        if not current.enabled:
            outcome.already_disabled = True
            logger.info(f"{account.account_id} already disabled; skipping", extra={"account_id": account.account_id})
            return

        if is_protected(current.description, self.settings.protection_marker):
            outcome.category = Category.PROTECTED
            outcome.action = Action.NONE
            logger.info(
                f"{account.account_id} became protected since the query; not disabled",
                extra={"account_id": account.account_id},
            )
            return

        description = annotate_deactivation(current.description, self.thresholds.now)

        if dry_run:
            outcome.deactivated = True
            logger.info(f"Dry run: {account.account_id} would be disabled", extra={"account_id": account.account_id})
            return

        try:
            self.directory.set_enabled_and_description(account.account_id, False, description)
        except DirectoryMutationError as e:
            record_error("directory_write")
            outcome.errors.append(f"Not disabled: {e}")
            logger.error(f"Disable failed for {account.account_id}: {e}", extra={"account_id": account.account_id})
            return

        outcome.deactivated = True
        logger.info(f"{account.account_id} disabled", extra={"account_id": account.account_id})
