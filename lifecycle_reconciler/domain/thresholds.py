"""Threshold calculation - turns policy parameters into classification boundaries"""

from datetime import datetime, timedelta
from typing import Optional

from lifecycle_reconciler.domain.exceptions import InvalidPolicyError
from lifecycle_reconciler.domain.models import Thresholds
from lifecycle_reconciler.utils.date_utils import ensure_utc


def compute_thresholds(
    now: datetime,
    inactivity_window_days: int,
    notification_lead_days: int,
    expiration_lead_days: Optional[int] = None,
) -> Thresholds:
    """
    Derive the run's time boundaries.

    - deactivation_cutoff: last activity on or before this date is due for deactivation
    - notification_cutoff: last activity on or before this date is inside the notice window
    - expiration_warning_cutoff: expirations up to this date count as "expiring soon"

    Raises:
        InvalidPolicyError: non-positive window, negative leads, or a notice
            lead longer than the window itself
    """
    if inactivity_window_days <= 0:
        raise InvalidPolicyError(f"Inactivity window must be positive, got {inactivity_window_days}")
    if notification_lead_days < 0:
        raise InvalidPolicyError(f"Notification lead cannot be negative, got {notification_lead_days}")
    if notification_lead_days > inactivity_window_days:
        raise InvalidPolicyError(
            f"Notification lead ({notification_lead_days}d) exceeds inactivity window "
            f"({inactivity_window_days}d)"
        )
    if expiration_lead_days is not None and expiration_lead_days < 0:
        raise InvalidPolicyError(f"Expiration lead cannot be negative, got {expiration_lead_days}")

    now = ensure_utc(now)
    deactivation_cutoff = now - timedelta(days=inactivity_window_days)

    return Thresholds(
        now=now,
        inactivity_window_days=inactivity_window_days,
        notification_lead_days=notification_lead_days,
        deactivation_cutoff=deactivation_cutoff,
        notification_cutoff=deactivation_cutoff + timedelta(days=notification_lead_days),
        expiration_lead_days=expiration_lead_days,
        expiration_warning_cutoff=(
            now + timedelta(days=expiration_lead_days) if expiration_lead_days is not None else None
        ),
    )
