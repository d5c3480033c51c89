"""
Report database model for moderation.
"""

import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from unipool.app.db.session import Base


class ReportType(str, enum.Enum):
    USER = "user"
    RIDE = "ride"


class ReportReason(str, enum.Enum):
    INAPPROPRIATE_BEHAVIOR = "inappropriate-behavior"
    HARASSMENT = "harassment"
    SAFETY_CONCERN = "safety-concern"
    NO_SHOW = "no-show"
    FRAUD = "fraud"
    SPAM = "spam"
    OTHER = "other"


class ReportStatus(str, enum.Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under-review"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


# Statuses an admin may close a report with
RESOLUTION_STATUSES = (ReportStatus.RESOLVED, ReportStatus.DISMISSED)


class Report(Base):
    """
    Report model.

    `type` discriminates the target: reported_user_id for USER,
    reported_ride_id for RIDE. Only admins mutate a report after submission.
    """
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    reporter_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(Enum(ReportType), nullable=False, index=True)
    reported_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    reported_ride_id = Column(Integer, ForeignKey("rides.id"), nullable=True, index=True)

    reason = Column(Enum(ReportReason), nullable=False)
    description = Column(String(1000), nullable=False)

    status = Column(Enum(ReportStatus), default=ReportStatus.PENDING, nullable=False, index=True)

    # Resolution
    admin_notes = Column(String(500), nullable=True)
    resolved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    resolved_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Report(id={self.id}, type='{self.type.value}', status='{self.status.value}')>"
