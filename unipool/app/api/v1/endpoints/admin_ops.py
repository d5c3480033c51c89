"""
Admin Operations API Endpoints.

Dead-letter queue inspection and retry, and the rating repair job.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc

from unipool.app.db.session import get_db
from unipool.app.core.exceptions import ResourceNotFoundError, InvalidStateError
from unipool.app.core.guards import require_admin
from unipool.app.models.dlq import DeadLetterQueue, DLQStatus
from unipool.app.models.user import User
from unipool.app.schemas.admin import DLQEntryResponse, RatingRepairResult
from unipool.app.schemas.common import Envelope
from unipool.app.services.audit import log_event, log_admin_action, AuditAction
from unipool.app.services.ratings import RECOMPUTE_RATING_TASK, retry_dead_letter, recompute_all_ratings

router = APIRouter(prefix="/admin/ops", tags=["Admin - Ops"])


@router.get("/dlq", response_model=Envelope[List[DLQEntryResponse]])
async def list_dlq_items(
    dlq_status: Optional[DLQStatus] = Query(None, alias="status"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    query = select(DeadLetterQueue)
    if dlq_status:
        query = query.where(DeadLetterQueue.status == dlq_status)
    query = query.order_by(desc(DeadLetterQueue.created_at), desc(DeadLetterQueue.id))
    result = await db.execute(query)
    return Envelope(data=[DLQEntryResponse.model_validate(item) for item in result.scalars().all()])


@router.post("/dlq/{dlq_id}/retry", response_model=Envelope[DLQEntryResponse])
async def retry_dlq_item(
    dlq_id: int = Path(..., description="DLQ Item ID"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Retry a failed task from the Dead Letter Queue.

    PROCESSED on success; otherwise it stays FAILED with the retry count bumped.
    """
    item = await db.get(DeadLetterQueue, dlq_id)
    if not item:
        raise ResourceNotFoundError("DLQ item", dlq_id)

    if item.status == DLQStatus.PROCESSED:
        raise InvalidStateError("DLQ item already processed")

    if item.task_name != RECOMPUTE_RATING_TASK:
        raise InvalidStateError(f"No retry handler for task {item.task_name}")

    admin_id, admin_email = admin.id, admin.email
    succeeded = await retry_dead_letter(db, item)

    item = await db.get(DeadLetterQueue, dlq_id)
    data = DLQEntryResponse.model_validate(item)
    # The retry may roll back the session, so the admin row is not reused here
    await log_event(
        db=db,
        actor_id=admin_id,
        actor_email=admin_email,
        action=AuditAction.DLQ_RETRIED,
        metadata={"dlq_id": dlq_id, "succeeded": succeeded}
    )

    return Envelope(
        message="Task processed" if succeeded else "Retry failed, task kept in queue",
        data=data
    )


@router.post("/ratings/recompute", response_model=Envelope[RatingRepairResult])
async def recompute_ratings(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Rebuild every user's rating aggregates from the review set."""
    users_updated = await recompute_all_ratings(db)
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.RATINGS_RECOMPUTED,
        metadata={"users_updated": users_updated}
    )
    return Envelope(message="Ratings recomputed", data=RatingRepairResult(users_updated=users_updated))
