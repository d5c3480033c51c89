"""
Booking Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from unipool.app.models.booking_enums import BookingStatus, PaymentStatus, PaymentMethod
from unipool.app.schemas.auth import UserSummary
from unipool.app.schemas.ride import RideSummary


class BookingRequest(BaseModel):
    """Schema for POST /bookings/request."""
    ride_id: int
    seats_requested: int = Field(default=1, ge=1, le=4)
    message: Optional[str] = Field(None, max_length=200)
    payment_method: PaymentMethod = PaymentMethod.CASH


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class BookingResponse(BaseModel):
    id: int
    ride_id: int
    passenger_id: int
    driver_id: int
    status: BookingStatus
    seats_requested: int
    amount_due: float
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    message: Optional[str] = None
    cancellation_reason: Optional[str] = None
    requested_at: datetime
    confirmed_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    ride: Optional[RideSummary] = None
    passenger: Optional[UserSummary] = None

    class Config:
        from_attributes = True
