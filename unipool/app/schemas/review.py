"""
Review Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from unipool.app.models.review import ReviewType, ReviewTag
from unipool.app.schemas.auth import UserSummary


class ReviewCreate(BaseModel):
    """
    Schema for POST /reviews.

    The review type is derived from the reviewee's part in the ride.
    """
    ride_id: int
    reviewee_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)
    tags: List[ReviewTag] = []


class ReviewResponse(BaseModel):
    id: int
    ride_id: int
    reviewer_id: int
    reviewee_id: int
    review_type: ReviewType
    rating: int
    comment: Optional[str] = None
    tags: List[ReviewTag] = []
    created_at: datetime
    reviewer: Optional[UserSummary] = None

    class Config:
        from_attributes = True
