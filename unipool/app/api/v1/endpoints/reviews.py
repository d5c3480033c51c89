"""
Review API Endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from unipool.app.db.session import get_db
from unipool.app.core.dependencies import get_current_user
from unipool.app.domain.reviews.review_service import ReviewService
from unipool.app.models.review import Review, ReviewType
from unipool.app.models.user import User
from unipool.app.schemas.auth import UserSummary
from unipool.app.schemas.common import Envelope
from unipool.app.schemas.review import ReviewCreate, ReviewResponse
from unipool.app.services.ratings import recompute_after_review

router = APIRouter(prefix="/reviews", tags=["Reviews"])


async def _review_responses(db: AsyncSession, reviews: List[Review]) -> List[ReviewResponse]:
    reviewer_ids = {r.reviewer_id for r in reviews}
    reviewers = {}
    if reviewer_ids:
        result = await db.execute(select(User).where(User.id.in_(reviewer_ids)))
        reviewers = {u.id: u for u in result.scalars().all()}

    responses = []
    for review in reviews:
        data = ReviewResponse.model_validate(review)
        if review.reviewer_id in reviewers:
            data.reviewer = UserSummary.model_validate(reviewers[review.reviewer_id])
        responses.append(data)
    return responses


@router.post("", response_model=Envelope[ReviewResponse], status_code=status.HTTP_201_CREATED)
async def submit_review(
    review_data: ReviewCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Review another participant of a completed ride.

    The reviewee's rating is recomputed after the review is saved; if that
    keeps failing the review still stands and the recompute is dead-lettered.
    """
    review = await ReviewService.submit_review(db, current_user, review_data)
    data = (await _review_responses(db, [review]))[0]

    await recompute_after_review(db, review.reviewee_id, review.review_type)

    return Envelope(message="Review submitted successfully", data=data)


@router.get("/user/{user_id}", response_model=Envelope[List[ReviewResponse]])
async def get_user_reviews(
    user_id: int = Path(..., description="Reviewee user ID"),
    review_type: Optional[ReviewType] = Query(None, alias="type"),
    db: AsyncSession = Depends(get_db)
):
    """Reviews received by a user, newest first (at most 50)."""
    reviews = await ReviewService.list_for_user(db, user_id, review_type)
    return Envelope(data=await _review_responses(db, reviews))


@router.get("/ride/{ride_id}", response_model=Envelope[List[ReviewResponse]])
async def get_ride_reviews(
    ride_id: int = Path(..., description="Ride ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    reviews = await ReviewService.list_for_ride(db, ride_id)
    return Envelope(data=await _review_responses(db, reviews))
