"""Pydantic schemas for API request/response validation"""

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field


class RunRequest(BaseModel):
    """Request body for POST /v1/runs"""

    dry_run: Optional[bool] = Field(None, description="Override the configured dry-run switch")


class ReportRowSchema(BaseModel):
    account_id: str
    display_name: str
    email_address: str
    last_activity: str
    days_inactive: str
    category: str
    action: str
    status: str
    result: str


class RunResponse(BaseModel):
    """Response for POST /v1/runs"""

    run_id: str
    dry_run: bool
    processed: int
    notified: int
    deactivated: int
    errors: int
    report_sent: bool
    counts: Dict[str, int]
    rows: List[ReportRowSchema]


class AccountRecord(BaseModel):
    """Directory record to classify, as the directory would report it"""

    account_id: str = Field(..., min_length=1)
    display_name: Optional[str] = None
    email_address: Optional[str] = None
    # ISO 8601 string or Windows FILETIME (int or digit string)
    last_activity_at: Optional[Union[int, str]] = None
    expires_at: Optional[Union[int, str]] = None
    description: str = ""
    enabled: bool = True


class ClassificationResponse(BaseModel):
    """Response for POST /v1/classify"""

    account_id: str
    category: str
    recommended_action: str
    days_inactive: int
    days_until_deactivation: int
    days_until_expiration: Optional[int] = None
