"""
Rating aggregation.

A user's driver and passenger ratings are derived from the review set:
average is the mean of all reviews for (reviewee, review_type) and count is
their number. Every recompute works from scratch, so running it again (after
a failure, or as a repair job) converges to the right value.
"""

import logging
from datetime import datetime
from typing import Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func

from unipool.app.core.config import settings
from unipool.app.core.reliability import retry_async, RetryExhaustedError
from unipool.app.models.dlq import DeadLetterQueue, DLQStatus
from unipool.app.models.review import Review, ReviewType
from unipool.app.models.user import User

logger = logging.getLogger(__name__)

RECOMPUTE_RATING_TASK = "recompute_rating"


def _rating_columns(review_type: ReviewType):
    if review_type == ReviewType.DRIVER:
        return User.driver_rating_average, User.driver_rating_count
    return User.passenger_rating_average, User.passenger_rating_count


async def recompute_user_rating(db: AsyncSession, user_id: int, review_type: ReviewType) -> Tuple[float, int]:
    """
    Recompute one rating aggregate of a user from every matching review and commit.

    Returns:
        (average, count) written to the user
    """
    review_type = ReviewType(review_type)
    result = await db.execute(
        select(func.avg(Review.rating), func.count(Review.id)).where(
            Review.reviewee_id == user_id,
            Review.review_type == review_type
        )
    )
    avg_rating, count = result.one()
    average = float(avg_rating) if count else 0.0

    average_col, count_col = _rating_columns(review_type)
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values({average_col: average, count_col: count})
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return average, count


async def _recompute_attempt(db: AsyncSession, user_id: int, review_type: ReviewType) -> Tuple[float, int]:
    try:
        return await recompute_user_rating(db, user_id, review_type)
    except Exception:
        await db.rollback()
        raise


async def recompute_after_review(db: AsyncSession, user_id: int, review_type: ReviewType) -> bool:
    """
    Post-commit step of review submission.

    Retries the recompute; if every attempt fails the task is written to the
    dead-letter queue for an admin retry and the review itself still stands.

    Returns:
        True if the aggregate was updated
    """
    try:
        await retry_async(
            _recompute_attempt,
            db,
            user_id,
            review_type,
            attempts=settings.rating_recompute_attempts,
            backoff_seconds=settings.rating_recompute_backoff_seconds,
            task_name=RECOMPUTE_RATING_TASK,
        )
        return True
    except RetryExhaustedError as e:
        logger.error(
            "Rating recompute failed, queued for retry",
            extra={"user_id": user_id, "review_type": ReviewType(review_type).value, "error": str(e.last_error)}
        )
        await _dead_letter(db, user_id, review_type, e.last_error)
        return False


async def _dead_letter(db: AsyncSession, user_id: int, review_type: ReviewType, error: Exception) -> None:
    # The review is already committed; a lost queue entry is repaired by recompute_all_ratings
    try:
        db.add(DeadLetterQueue(
            task_name=RECOMPUTE_RATING_TASK,
            error_message=str(error),
            payload={"user_id": user_id, "review_type": ReviewType(review_type).value},
        ))
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception(
            "Could not queue rating recompute",
            extra={"user_id": user_id, "review_type": ReviewType(review_type).value}
        )


async def retry_dead_letter(db: AsyncSession, entry: DeadLetterQueue) -> bool:
    """
    Re-run a dead-lettered recompute once.

    The entry becomes PROCESSED on success; otherwise it stays FAILED with
    the retry count and error updated.
    """
    payload = entry.payload or {}
    entry_id = entry.id
    try:
        await recompute_user_rating(db, payload["user_id"], ReviewType(payload["review_type"]))
        succeeded = True
        error_message = entry.error_message
    except Exception as e:
        await db.rollback()
        logger.error("Dead-letter retry failed", extra={"dlq_id": entry_id, "error": str(e)})
        succeeded = False
        error_message = str(e)

    entry = await db.get(DeadLetterQueue, entry_id)
    entry.retry_count = (entry.retry_count or 0) + 1
    entry.last_retry_at = datetime.utcnow()
    entry.error_message = error_message
    if succeeded:
        entry.status = DLQStatus.PROCESSED
    await db.commit()
    return succeeded


async def recompute_all_ratings(db: AsyncSession) -> int:
    """
    Repair job: rebuild both rating aggregates of every user from the review set.

    Returns:
        Number of users whose aggregates were written
    """
    result = await db.execute(
        select(
            Review.reviewee_id,
            Review.review_type,
            func.avg(Review.rating),
            func.count(Review.id)
        ).group_by(Review.reviewee_id, Review.review_type)
    )
    aggregates = {}
    for reviewee_id, review_type, avg_rating, count in result.all():
        aggregates[(reviewee_id, ReviewType(review_type))] = (float(avg_rating), count)

    user_ids = (await db.execute(select(User.id))).scalars().all()
    for user_id in user_ids:
        driver_avg, driver_count = aggregates.get((user_id, ReviewType.DRIVER), (0.0, 0))
        passenger_avg, passenger_count = aggregates.get((user_id, ReviewType.PASSENGER), (0.0, 0))
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                driver_rating_average=driver_avg,
                driver_rating_count=driver_count,
                passenger_rating_average=passenger_avg,
                passenger_rating_count=passenger_count,
            )
            .execution_options(synchronize_session=False)
        )
    await db.commit()
    logger.info("Rating aggregates rebuilt", extra={"users": len(user_ids)})
    return len(user_ids)
