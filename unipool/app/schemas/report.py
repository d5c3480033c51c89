"""
Report Pydantic schemas.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional
from unipool.app.models.report import ReportType, ReportReason, ReportStatus, RESOLUTION_STATUSES


class ReportCreate(BaseModel):
    """
    Schema for submitting a report.

    `type` says which of reported_user_id / reported_ride_id must be set.
    """
    type: ReportType
    reported_user_id: Optional[int] = None
    reported_ride_id: Optional[int] = None
    reason: ReportReason
    description: str = Field(..., min_length=1, max_length=1000)


class ReportResolve(BaseModel):
    status: ReportStatus
    admin_notes: Optional[str] = Field(None, max_length=500)

    @field_validator("status")
    @classmethod
    def closing_status(cls, v: ReportStatus) -> ReportStatus:
        if v not in RESOLUTION_STATUSES:
            raise ValueError("Status must be resolved or dismissed")
        return v


class ReportResponse(BaseModel):
    id: int
    reporter_id: int
    type: ReportType
    reported_user_id: Optional[int] = None
    reported_ride_id: Optional[int] = None
    reason: ReportReason
    description: str
    status: ReportStatus
    admin_notes: Optional[str] = None
    resolved_by_id: Optional[int] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
