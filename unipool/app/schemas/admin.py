"""
Admin API Schema Definitions.

Pydantic schemas for admin and operations endpoints.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Dict, Any
from unipool.app.models.dlq import DLQStatus
from unipool.app.models.enums import UserStatus


class UserStatusUpdate(BaseModel):
    """Schema for changing an account status."""
    status: UserStatus


class AuditLogResponse(BaseModel):
    """Schema for audit log entry."""
    id: int
    actor_id: Optional[int]
    actor_email: Optional[str]
    action: str
    target_user_id: Optional[int]
    target_email: Optional[str]
    meta_data: Optional[dict]
    ip_address: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class DLQEntryResponse(BaseModel):
    id: int
    task_name: str
    error_message: str
    payload: Optional[Dict[str, Any]]
    status: DLQStatus
    retry_count: int
    created_at: datetime
    last_retry_at: Optional[datetime]

    class Config:
        from_attributes = True


class RatingRepairResult(BaseModel):
    users_updated: int
