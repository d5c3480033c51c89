"""
User database model.

This module defines the User SQLAlchemy model: credentials, profile,
role, verification flags, rating aggregates and lifetime counters.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, Float, Index
from unipool.app.db.session import Base
from unipool.app.models.enums import UserRole, UserStatus, University


class User(Base):
    """
    User model for authentication and profile data.

    Users are never hard-deleted; moderation changes `status` instead.
    Rating aggregates are owned by the rating recompute in services/ratings.py.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)

    role = Column(Enum(UserRole), default=UserRole.PASSENGER, nullable=False)
    status = Column(Enum(UserStatus), default=UserStatus.ACTIVE, nullable=False, index=True)
    email_verified = Column(Boolean, default=False, nullable=False)
    phone_verified = Column(Boolean, default=False, nullable=False)

    # Profile
    university = Column(Enum(University), nullable=False)
    department = Column(String(100), nullable=True)
    student_id = Column(String(50), nullable=True)
    bio = Column(String(500), nullable=True)
    home_area = Column(String(100), nullable=True)

    # Vehicle (drivers)
    vehicle_make = Column(String(50), nullable=True)
    vehicle_model = Column(String(50), nullable=True)
    vehicle_color = Column(String(30), nullable=True)
    vehicle_license_plate = Column(String(20), nullable=True)
    vehicle_year = Column(Integer, nullable=True)

    # Rating aggregates: average is the mean of exactly `count` reviews
    driver_rating_average = Column(Float, default=0.0, nullable=False)
    driver_rating_count = Column(Integer, default=0, nullable=False)
    passenger_rating_average = Column(Float, default=0.0, nullable=False)
    passenger_rating_count = Column(Integer, default=0, nullable=False)

    # Lifetime counters
    rides_as_driver = Column(Integer, default=0, nullable=False)
    rides_as_passenger = Column(Integer, default=0, nullable=False)
    total_earnings = Column(Float, default=0.0, nullable=False)

    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_users_university_role", "university", "role"),
    )

    @property
    def driver_rating(self) -> dict:
        return {"average": self.driver_rating_average, "count": self.driver_rating_count}

    @property
    def passenger_rating(self) -> dict:
        return {"average": self.passenger_rating_average, "count": self.passenger_rating_count}

    @property
    def is_driver(self) -> bool:
        return self.role in (UserRole.DRIVER, UserRole.BOTH)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}', status='{self.status.value}')>"
