"""POST /v1/classify - classify a single account record under the current policy"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from lifecycle_reconciler.api.dependencies import get_settings
from lifecycle_reconciler.api.v1.schemas import AccountRecord, ClassificationResponse
from lifecycle_reconciler.config import Settings
from lifecycle_reconciler.domain.classifier import classify
from lifecycle_reconciler.domain.exceptions import InvalidPolicyError
from lifecycle_reconciler.domain.protection import apply_protection
from lifecycle_reconciler.domain.thresholds import compute_thresholds
from lifecycle_reconciler.infrastructure.clients.directory import parse_account

router = APIRouter()


@router.post("/classify", response_model=ClassificationResponse)
def classify_account(
    record: AccountRecord,
    settings: Settings = Depends(get_settings),
):
    """Pure evaluation: nothing is read from or written to the directory"""
    try:
        thresholds = compute_thresholds(
            datetime.now(timezone.utc),
            settings.inactivity_window_days,
            settings.notification_lead_days,
            settings.expiration_lead_days if settings.expiration_handling_enabled else None,
        )
    except InvalidPolicyError as e:
        logging.warning(f"Invalid policy: {e}")
        raise HTTPException(status_code=422, detail=str(e))

    try:
        account = parse_account(record.model_dump())
    except (ValueError, TypeError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid account record: {e}")

    result = classify(account, thresholds, settings.expiration_handling_enabled)
    result = apply_protection(account, result, settings.protection_marker)

    return ClassificationResponse(
        account_id=result.account_id,
        category=result.category.value,
        recommended_action=result.recommended_action.value,
        days_inactive=result.days_inactive,
        days_until_deactivation=result.days_until_deactivation,
        days_until_expiration=result.days_until_expiration,
    )
