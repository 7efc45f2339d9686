"""POST /v1/runs - trigger one reconciliation pass"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from lifecycle_reconciler.api.dependencies import get_reconciler, get_request_id
from lifecycle_reconciler.api.v1.schemas import ReportRowSchema, RunRequest, RunResponse
from lifecycle_reconciler.domain.exceptions import (
    DirectoryQueryError,
    InvalidPolicyError,
    PreconditionMissingError,
    TemplateRenderError,
)
from lifecycle_reconciler.services.reconciler import LifecycleReconciler
from lifecycle_reconciler.services.reporting import build_report

router = APIRouter()


@router.post("/runs", response_model=RunResponse)
def create_run(
    request_body: RunRequest,
    request: Request,
    reconciler: LifecycleReconciler = Depends(get_reconciler),
):
    """
    Run the reconciler synchronously and return its report.

    Per-account failures are part of a successful response (status "error" rows);
    only fatal run failures map to HTTP errors.
    """
    request_id = get_request_id(request)

    try:
        summary = reconciler.run(dry_run=request_body.dry_run)

    except InvalidPolicyError as e:
        logging.warning(f"Invalid policy: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except (PreconditionMissingError, DirectoryQueryError) as e:
        logging.error(f"Run aborted: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail=str(e))

    except TemplateRenderError as e:
        logging.error(f"Admin report render failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Admin report could not be rendered")

    payload = build_report(summary, reconciler.settings)
    return RunResponse(
        run_id=summary.run_id,
        dry_run=summary.dry_run,
        processed=summary.processed,
        notified=summary.notified,
        deactivated=summary.deactivated,
        errors=summary.errors,
        report_sent=summary.report_sent,
        counts={label: value for label, value in payload.counts},
        rows=[ReportRowSchema(**vars(row)) for row in payload.rows],
    )
