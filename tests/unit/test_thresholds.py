"""Unit tests for threshold calculation"""

import pytest
from datetime import datetime, timedelta, timezone
from lifecycle_reconciler.domain.exceptions import InvalidPolicyError
from lifecycle_reconciler.domain.thresholds import compute_thresholds


def test_compute_thresholds_cutoffs(now):
    """Test deactivation, notification and expiration boundaries"""
    thresholds = compute_thresholds(now, 45, 15, 30)

    assert thresholds.now == now
    assert thresholds.deactivation_cutoff == now - timedelta(days=45)
    assert thresholds.notification_cutoff == now - timedelta(days=30)  # 45 - 15
    assert thresholds.expiration_warning_cutoff == now + timedelta(days=30)
    assert thresholds.inactivity_window_days == 45
    assert thresholds.notification_lead_days == 15


def test_compute_thresholds_without_expiration_lead(now):
    """Test expiration cutoff is only derived when a lead is given"""
    thresholds = compute_thresholds(now, 45, 15)

    assert thresholds.expiration_lead_days is None
    assert thresholds.expiration_warning_cutoff is None


def test_compute_thresholds_lead_equal_to_window(now):
    """Test notice window spanning the whole inactivity window is allowed"""
    thresholds = compute_thresholds(now, 30, 30)

    assert thresholds.notification_cutoff == now


def test_compute_thresholds_is_deterministic(now):
    assert compute_thresholds(now, 45, 15, 30) == compute_thresholds(now, 45, 15, 30)


def test_compute_thresholds_naive_now_is_utc():
    """Test naive timestamps are interpreted as UTC"""
    thresholds = compute_thresholds(datetime(2026, 10, 17, 12, 0), 45, 15)

    assert thresholds.now == datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "window, lead, expiration_lead",
    [
        (45, 46, None),  # notice would start before the window does
        (0, 0, None),
        (-5, 0, None),
        (45, -1, None),
        (45, 15, -1),
    ],
)
def test_compute_thresholds_invalid_policy(now, window, lead, expiration_lead):
    """Test contradictory or negative policy values are rejected"""
    with pytest.raises(InvalidPolicyError):
        compute_thresholds(now, window, lead, expiration_lead)
