"""Description-field contracts: protection marker and deactivation annotation"""

from dataclasses import replace
from datetime import datetime
from typing import Optional

from lifecycle_reconciler.domain.models import Account, Action, Category, ClassificationResult
from lifecycle_reconciler.utils.date_utils import DISPLAY_FORMAT, ensure_utc

PROTECTION_MARKER = "//ACCOUNT_PROTECTED//"
DEACTIVATION_ANNOTATION = "| Disabled at "


def is_protected(description: Optional[str], marker: str = PROTECTION_MARKER) -> bool:
    """Case-sensitive substring match"""
    return bool(description) and marker in description


def apply_protection(
    account: Account,
    result: ClassificationResult,
    marker: str = PROTECTION_MARKER,
) -> ClassificationResult:
    """Protected accounts are never notified, deactivated or flagged, whatever the classification"""
    if not is_protected(account.description, marker):
        return result
    return replace(result, category=Category.PROTECTED, recommended_action=Action.NONE)


def annotate_deactivation(description: Optional[str], when: datetime) -> str:
    """Append the deactivation annotation once; an annotated description is returned as-is"""
    description = description or ""
    if DEACTIVATION_ANNOTATION in description:
        return description
    annotation = f"{DEACTIVATION_ANNOTATION}{ensure_utc(when).strftime(DISPLAY_FORMAT)}"
    return f"{description} {annotation}".strip()
