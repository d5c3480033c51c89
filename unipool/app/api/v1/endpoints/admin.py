"""
Admin API Endpoints.

User moderation, reports and the audit trail. Status changes and report
resolutions are audit-logged.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from unipool.app.db.session import get_db
from unipool.app.core.dependencies import get_current_user
from unipool.app.core.exceptions import (
    ResourceNotFoundError, InvalidStateError, InsufficientPermissionsError, ValidationFailedError
)
from unipool.app.core.guards import require_admin
from unipool.app.models.enums import UserRole, UserStatus, University
from unipool.app.models.report import Report, ReportType, ReportStatus
from unipool.app.models.ride import Ride
from unipool.app.models.user import User
from unipool.app.schemas.admin import UserStatusUpdate, AuditLogResponse
from unipool.app.schemas.auth import UserResponse
from unipool.app.schemas.common import Envelope, PageEnvelope
from unipool.app.schemas.report import ReportCreate, ReportResolve, ReportResponse
from unipool.app.services.audit import log_admin_action, AuditAction, get_audit_trail

router = APIRouter(prefix="/admin", tags=["Admin"])


async def _paginate(db: AsyncSession, query, page: int, limit: int):
    total = (await db.execute(
        select(func.count()).select_from(query.order_by(None).subquery())
    )).scalar() or 0
    result = await db.execute(query.offset((page - 1) * limit).limit(limit))
    return result.scalars().all(), total


@router.get("/users", response_model=PageEnvelope[UserResponse])
async def list_users(
    user_status: Optional[UserStatus] = Query(None, alias="status"),
    university: Optional[University] = Query(None),
    role: Optional[UserRole] = Query(None),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List users with optional filters (admin-only).

    Newest accounts first.
    """
    query = select(User)
    if user_status:
        query = query.where(User.status == user_status)
    if university:
        query = query.where(User.university == university)
    if role:
        query = query.where(User.role == role)
    query = query.order_by(User.created_at.desc(), User.id.desc())

    users, total = await _paginate(db, query, page, limit)
    return PageEnvelope[UserResponse].build(
        [UserResponse.model_validate(u) for u in users], total, page, limit
    )


@router.put("/users/{user_id}/status", response_model=Envelope[UserResponse])
async def update_user_status(
    status_data: UserStatusUpdate,
    user_id: int = Path(..., description="User ID"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Set a user's account status (admin-only).

    Rides and bookings are left untouched; a non-active account is refused
    at authentication from its next request on.
    """
    target_user = await db.get(User, user_id)
    if not target_user:
        raise ResourceNotFoundError("User", user_id)

    if target_user.id == admin.id:
        raise InvalidStateError("You cannot change your own status")

    if target_user.role == UserRole.ADMIN:
        raise InsufficientPermissionsError("Cannot change another admin's status")

    previous = target_user.status
    target_user.status = status_data.status

    # Commits the status change together with the audit entry
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.USER_STATUS_CHANGED,
        target=target_user,
        metadata={"from": previous.value, "to": status_data.status.value}
    )

    return Envelope(
        message=f"User status updated to {status_data.status.value}",
        data=UserResponse.model_validate(target_user)
    )


@router.post("/reports", response_model=Envelope[ReportResponse], status_code=status.HTTP_201_CREATED)
async def submit_report(
    report_data: ReportCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Report a user or a ride (any authenticated user).

    The target id matching `type` is required and must exist.
    """
    if report_data.type == ReportType.USER:
        if report_data.reported_user_id is None:
            raise ValidationFailedError("reported_user_id is required for user reports")
        if not await db.get(User, report_data.reported_user_id):
            raise ResourceNotFoundError("User", report_data.reported_user_id)
        reported_user_id, reported_ride_id = report_data.reported_user_id, None
    else:
        if report_data.reported_ride_id is None:
            raise ValidationFailedError("reported_ride_id is required for ride reports")
        if not await db.get(Ride, report_data.reported_ride_id):
            raise ResourceNotFoundError("Ride", report_data.reported_ride_id)
        reported_user_id, reported_ride_id = None, report_data.reported_ride_id

    report = Report(
        reporter_id=current_user.id,
        type=report_data.type,
        reported_user_id=reported_user_id,
        reported_ride_id=reported_ride_id,
        reason=report_data.reason,
        description=report_data.description,
        status=ReportStatus.PENDING,
    )
    db.add(report)
    await db.commit()

    return Envelope(message="Report submitted successfully", data=ReportResponse.model_validate(report))


@router.get("/reports", response_model=PageEnvelope[ReportResponse])
async def list_reports(
    report_status: Optional[ReportStatus] = Query(None, alias="status"),
    report_type: Optional[ReportType] = Query(None, alias="type"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """List reports with optional filters (admin-only), newest first."""
    query = select(Report)
    if report_status:
        query = query.where(Report.status == report_status)
    if report_type:
        query = query.where(Report.type == report_type)
    query = query.order_by(Report.created_at.desc(), Report.id.desc())

    reports, total = await _paginate(db, query, page, limit)
    return PageEnvelope[ReportResponse].build(
        [ReportResponse.model_validate(r) for r in reports], total, page, limit
    )


@router.put("/reports/{report_id}/resolve", response_model=Envelope[ReportResponse])
async def resolve_report(
    resolve_data: ReportResolve,
    report_id: int = Path(..., description="Report ID"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Resolve or dismiss a report (admin-only)."""
    report = await db.get(Report, report_id)
    if not report:
        raise ResourceNotFoundError("Report", report_id)

    report.status = resolve_data.status
    report.admin_notes = resolve_data.admin_notes
    report.resolved_by_id = admin.id
    report.resolved_at = datetime.utcnow()

    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.REPORT_RESOLVED,
        metadata={"report_id": report.id, "status": resolve_data.status.value}
    )

    return Envelope(message=f"Report {resolve_data.status.value}", data=ReportResponse.model_validate(report))


@router.get("/audit-logs", response_model=Envelope[List[AuditLogResponse]])
async def get_audit_logs(
    user_id: Optional[int] = Query(None, description="Actor or target user ID"),
    action: Optional[str] = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Get the audit trail (admin-only), most recent first."""
    logs = await get_audit_trail(db, user_id=user_id, action=action, limit=limit)
    return Envelope(data=[AuditLogResponse.model_validate(log) for log in logs])
