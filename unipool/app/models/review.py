"""
Review database model and vocabularies.

Reviews are ride-scoped, one-directional feedback. The review type is
derived from the reviewee's part in the ride, never chosen by the client.
"""

import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, JSON, UniqueConstraint, Index, CheckConstraint
from unipool.app.db.session import Base


class ReviewType(str, enum.Enum):
    DRIVER = "driver"  # Reviewee drove the ride
    PASSENGER = "passenger"  # Reviewee was on the roster


class ReviewTag(str, enum.Enum):
    """Closed tag vocabulary."""
    PUNCTUAL = "punctual"
    FRIENDLY = "friendly"
    SAFE_DRIVER = "safe-driver"
    CLEAN_CAR = "clean-car"
    GOOD_CONVERSATION = "good-conversation"
    QUIET = "quiet"
    PROFESSIONAL = "professional"
    RESPECTFUL = "respectful"
    HELPFUL = "helpful"
    UNRELIABLE = "unreliable"
    RUDE = "rude"
    UNSAFE = "unsafe"


class Review(Base):
    """
    Review model.

    One review per (ride, reviewer): a reviewer rates a single participant per ride.
    """
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    ride_id = Column(Integer, ForeignKey("rides.id"), nullable=False, index=True)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reviewee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    review_type = Column(Enum(ReviewType), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(String(500), nullable=True)
    tags = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("ride_id", "reviewer_id", name="uq_reviews_ride_reviewer"),
        Index("ix_reviews_reviewee_type", "reviewee_id", "review_type"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )

    def __repr__(self):
        return f"<Review(id={self.id}, ride_id={self.ride_id}, reviewee_id={self.reviewee_id}, rating={self.rating})>"
