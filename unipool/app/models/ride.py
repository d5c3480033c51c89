"""
Ride database models.

A ride is one offered trip with a fixed seat capacity. Its confirmed
passengers are kept as ordered roster rows in `ride_passengers`.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum, JSON, CheckConstraint, Index
from unipool.app.db.session import Base
from unipool.app.models.ride_enums import RideStatus


DEFAULT_PREFERENCES = {
    "non_smoking": True,
    "ac_available": False,
    "music_allowed": True,
    "pets_allowed": False,
}


class Ride(Base):
    """
    Ride model.

    `total_seats` is fixed at creation. `available_seats` only changes through
    the seat inventory service (booking approval and cancellation).
    """
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Route
    origin = Column(String(200), nullable=False)
    destination = Column(String(200), nullable=False)

    # Schedule: departure_at is naive UTC; departure_time keeps the HH:MM input
    departure_at = Column(DateTime, nullable=False, index=True)
    departure_time = Column(String(5), nullable=False)

    # Seat inventory
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)

    cost_per_passenger = Column(Float, nullable=False)
    preferences = Column(JSON, nullable=False, default=lambda: dict(DEFAULT_PREFERENCES))
    notes = Column(String(500), nullable=True)

    status = Column(Enum(RideStatus), default=RideStatus.SCHEDULED, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "available_seats >= 0 AND available_seats <= total_seats",
            name="ck_rides_available_seats_range",
        ),
        CheckConstraint("total_seats BETWEEN 1 AND 4", name="ck_rides_total_seats_range"),
        Index("ix_rides_status_departure", "status", "departure_at"),
    )

    def __repr__(self):
        return f"<Ride(id={self.id}, driver_id={self.driver_id}, seats={self.available_seats}/{self.total_seats}, status='{self.status.value}')>"


class RidePassenger(Base):
    """
    One roster entry of a ride.

    Entries are ordered by id (insertion order). A passenger appears once per
    confirmed booking.
    """
    __tablename__ = "ride_passengers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    ride_id = Column(Integer, ForeignKey("rides.id"), nullable=False, index=True)
    passenger_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<RidePassenger(ride_id={self.ride_id}, passenger_id={self.passenger_id})>"
