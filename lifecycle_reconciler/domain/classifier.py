"""Account classifier - core lifecycle decision logic"""

from lifecycle_reconciler.domain.models import (
    Account,
    Action,
    Category,
    ClassificationResult,
    Thresholds,
)
from lifecycle_reconciler.utils.date_utils import EPOCH, ensure_utc, is_never_expires, whole_days_between


def days_inactive(account: Account, thresholds: Thresholds) -> int:
    """Whole days since last authentication; never-authenticated accounts count from epoch-zero"""
    last_activity = account.last_activity_at or EPOCH
    if ensure_utc(last_activity) < EPOCH:
        last_activity = EPOCH
    return whole_days_between(last_activity, thresholds.now)


def has_real_expiration(account: Account) -> bool:
    return not is_never_expires(account.expires_at)


def classify(
    account: Account,
    thresholds: Thresholds,
    expiration_handling_enabled: bool,
) -> ClassificationResult:
    """
    Map one account to exactly one lifecycle category and a recommended action.

    Expiration path (only when enabled and the account has a real expiration):
    - expires after today, within the warning lead -> expiring_soon / flag
    - expires today or earlier, still enabled      -> expired_but_enabled / flag
    - anything else                                -> compliant / none
    Expiration is never acted on here, only flagged for manual follow-up, and
    such accounts skip the inactivity path entirely.

    Inactivity path:
    - days_inactive >  window          -> inactive / deactivate
    - days_inactive == window          -> inactive / notify_and_deactivate ("deactivated today" notice)
    - window - lead <= days < window   -> inactive / notify
    - otherwise                        -> compliant / none
    """
    inactive = days_inactive(account, thresholds)
    until_deactivation = thresholds.inactivity_window_days - inactive

    if expiration_handling_enabled and has_real_expiration(account):
        expires_at = ensure_utc(account.expires_at)
        until_expiration = (expires_at.date() - thresholds.now.date()).days

        if until_expiration > 0:
            cutoff = thresholds.expiration_warning_cutoff
            if cutoff is None or expires_at <= cutoff:
                category, action = Category.EXPIRING_SOON, Action.FLAG
            else:
                category, action = Category.COMPLIANT, Action.NONE
        elif account.enabled:
            category, action = Category.EXPIRED_BUT_ENABLED, Action.FLAG
        else:
            category, action = Category.COMPLIANT, Action.NONE

        return ClassificationResult(
            account_id=account.account_id,
            category=category,
            recommended_action=action,
            days_inactive=inactive,
            days_until_deactivation=until_deactivation,
            days_until_expiration=until_expiration,
        )

    window = thresholds.inactivity_window_days
    if inactive > window:
        category, action = Category.INACTIVE, Action.DEACTIVATE
    elif inactive == window:
        category, action = Category.INACTIVE, Action.NOTIFY_AND_DEACTIVATE
    elif inactive >= window - thresholds.notification_lead_days:
        category, action = Category.INACTIVE, Action.NOTIFY
    else:
        category, action = Category.COMPLIANT, Action.NONE

    return ClassificationResult(
        account_id=account.account_id,
        category=category,
        recommended_action=action,
        days_inactive=inactive,
        days_until_deactivation=until_deactivation,
    )
