"""
Booking database model.

A booking is one passenger's claim against one ride.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum, Index, CheckConstraint, text
from unipool.app.db.session import Base
from unipool.app.models.booking_enums import BookingStatus, PaymentStatus, PaymentMethod

# Enum columns persist member names
_ACTIVE_STATUS_CLAUSE = text("status IN ('PENDING', 'CONFIRMED')")


class Booking(Base):
    """
    Booking model.

    `driver_id` is a copy of the ride's driver taken at request time. The
    ride's live driver stays authoritative for authorization.
    `amount_due` is computed once at request time.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    ride_id = Column(Integer, ForeignKey("rides.id"), nullable=False, index=True)
    passenger_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    status = Column(Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False, index=True)
    seats_requested = Column(Integer, default=1, nullable=False)
    amount_due = Column(Float, nullable=False)

    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    payment_method = Column(Enum(PaymentMethod), default=PaymentMethod.CASH, nullable=False)

    message = Column(String(200), nullable=True)
    cancellation_reason = Column(String(500), nullable=True)

    # Transition timestamps
    requested_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    confirmed_at = Column(DateTime, nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_bookings_ride_passenger", "ride_id", "passenger_id"),
        # At most one pending/confirmed booking per (ride, passenger)
        Index(
            "ux_bookings_active_ride_passenger",
            "ride_id",
            "passenger_id",
            unique=True,
            postgresql_where=_ACTIVE_STATUS_CLAUSE,
            sqlite_where=_ACTIVE_STATUS_CLAUSE,
        ),
        CheckConstraint("seats_requested BETWEEN 1 AND 4", name="ck_bookings_seats_requested_range"),
    )

    def __repr__(self):
        return f"<Booking(id={self.id}, ride_id={self.ride_id}, passenger_id={self.passenger_id}, status='{self.status.value}')>"
