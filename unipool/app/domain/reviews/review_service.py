"""
Review Service (Domain Logic).

Records post-ride feedback. The rating aggregate is recomputed after the
review commits, as a separate retryable step.
"""

import logging
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from sqlalchemy.exc import IntegrityError

from unipool.app.core.exceptions import (
    InsufficientPermissionsError, InvalidStateError, InvalidRevieweeError, ConflictError
)
from unipool.app.models.review import Review, ReviewType
from unipool.app.models.ride_enums import RideStatus
from unipool.app.models.user import User
from unipool.app.schemas.review import ReviewCreate
from unipool.app.services.seat_inventory import load_ride, get_roster_ids

logger = logging.getLogger(__name__)

USER_REVIEWS_LIMIT = 50


class ReviewService:

    @staticmethod
    async def submit_review(db: AsyncSession, reviewer: User, payload: ReviewCreate) -> Review:
        """
        Record a review of another participant of a completed ride.

        Flow:
        1. Ride exists and is completed
        2. Reviewer drove the ride or is on its roster
        3. Review type derived from the reviewee's part in the ride
        4. One review per (ride, reviewer)
        5. Insert and commit

        Does not touch rating aggregates; see services/ratings.py.
        """
        ride = await load_ride(db, payload.ride_id)

        if ride.status != RideStatus.COMPLETED:
            raise InvalidStateError("Can only review completed rides", {"ride_status": ride.status.value})

        roster = await get_roster_ids(db, ride.id)

        if reviewer.id != ride.driver_id and reviewer.id not in roster:
            raise InsufficientPermissionsError("You were not part of this ride")

        if payload.reviewee_id == reviewer.id:
            raise InvalidRevieweeError("You cannot review yourself")

        if payload.reviewee_id == ride.driver_id:
            review_type = ReviewType.DRIVER
        elif payload.reviewee_id in roster:
            review_type = ReviewType.PASSENGER
        else:
            raise InvalidRevieweeError()

        existing = await db.execute(
            select(Review.id).where(Review.ride_id == ride.id, Review.reviewer_id == reviewer.id)
        )
        if existing.first():
            raise ConflictError("You have already reviewed this ride")

        review = Review(
            ride_id=ride.id,
            reviewer_id=reviewer.id,
            reviewee_id=payload.reviewee_id,
            review_type=review_type,
            rating=payload.rating,
            comment=payload.comment,
            tags=[tag.value for tag in dict.fromkeys(payload.tags)],
        )
        db.add(review)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("You have already reviewed this ride")

        logger.info(
            "Review recorded",
            extra={"review_id": review.id, "ride_id": ride.id, "review_type": review_type.value}
        )
        return review

    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        user_id: int,
        review_type: Optional[ReviewType] = None
    ) -> List[Review]:
        query = select(Review).where(Review.reviewee_id == user_id)
        if review_type:
            query = query.where(Review.review_type == review_type)
        query = query.order_by(desc(Review.created_at), desc(Review.id)).limit(USER_REVIEWS_LIMIT)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def list_for_ride(db: AsyncSession, ride_id: int) -> List[Review]:
        await load_ride(db, ride_id)
        result = await db.execute(
            select(Review).where(Review.ride_id == ride_id).order_by(Review.created_at, Review.id)
        )
        return list(result.scalars().all())
