"""
Audit logging service for tracking security events and admin actions.

Provides centralized logging for moderation and security monitoring.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from unipool.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    USER_REGISTERED = "USER_REGISTERED"
    LOGOUT = "LOGOUT"

    # Moderation
    USER_STATUS_CHANGED = "USER_STATUS_CHANGED"
    REPORT_RESOLVED = "REPORT_RESOLVED"

    # Operations
    RATINGS_RECOMPUTED = "RATINGS_RECOMPUTED"
    DLQ_RETRIED = "DLQ_RETRIED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_email: Optional[str] = None,
    target_user_id: Optional[int] = None,
    target_email: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Log a security or admin event to the audit log.

    Commits the session, so any pending change made by the caller is
    committed together with the log entry.

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_email=actor_email,
        action=action,
        target_user_id=target_user_id,
        target_email=target_email,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def log_admin_action(
    db: AsyncSession,
    admin,
    action: str,
    target=None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log an admin action (status change, report resolution, repair jobs).

    Args:
        admin: Acting admin User
        target: User acted upon, if any
    """
    return await log_event(
        db=db,
        action=action,
        actor_id=admin.id,
        actor_email=admin.email,
        target_user_id=target.id if target is not None else None,
        target_email=target.email if target is not None else None,
        metadata=metadata
    )


async def log_auth_event(
    db: AsyncSession,
    action: str,
    user_id: Optional[int],
    email: Optional[str],
    ip_address: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log an authentication event (login success/failure, registration).

    Args:
        metadata: Additional context (e.g., failure reason); never the password
    """
    return await log_event(
        db=db,
        action=action,
        actor_id=user_id,
        actor_email=email,
        ip_address=ip_address,
        metadata=metadata
    )


async def get_audit_trail(
    db: AsyncSession,
    user_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Args:
        user_id: Entries where this user is actor or target
        action: Filter by action type
        limit: Maximum number of records to return

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if user_id:
        query = query.where(
            (AuditLog.actor_id == user_id) | (AuditLog.target_user_id == user_id)
        )

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return result.scalars().all()
