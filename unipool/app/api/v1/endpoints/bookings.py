"""
Booking API Endpoints.

Thin HTTP layer over BookingService; every transition commits once.
"""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from unipool.app.db.session import get_db
from unipool.app.core.dependencies import get_current_user
from unipool.app.core.guards import require_verified
from unipool.app.domain.bookings.booking_service import BookingService
from unipool.app.models.booking import Booking
from unipool.app.models.booking_enums import BookingStatus
from unipool.app.models.ride import Ride
from unipool.app.models.user import User
from unipool.app.schemas.auth import UserSummary
from unipool.app.schemas.booking import BookingRequest, BookingCancel, BookingResponse
from unipool.app.schemas.common import Envelope
from unipool.app.schemas.ride import RideSummary

router = APIRouter(prefix="/bookings", tags=["Bookings"])


async def _booking_responses(db: AsyncSession, bookings: List[Booking]) -> List[BookingResponse]:
    """Serialize bookings with their ride and passenger summaries."""
    ride_ids = {b.ride_id for b in bookings}
    passenger_ids = {b.passenger_id for b in bookings}

    rides = {}
    if ride_ids:
        result = await db.execute(
            select(Ride).where(Ride.id.in_(ride_ids)).execution_options(populate_existing=True)
        )
        rides = {r.id: r for r in result.scalars().all()}

    passengers = {}
    if passenger_ids:
        result = await db.execute(select(User).where(User.id.in_(passenger_ids)))
        passengers = {u.id: u for u in result.scalars().all()}

    responses = []
    for booking in bookings:
        data = BookingResponse.model_validate(booking)
        if booking.ride_id in rides:
            data.ride = RideSummary.model_validate(rides[booking.ride_id])
        if booking.passenger_id in passengers:
            data.passenger = UserSummary.model_validate(passengers[booking.passenger_id])
        responses.append(data)
    return responses


async def _booking_response(db: AsyncSession, booking: Booking) -> BookingResponse:
    return (await _booking_responses(db, [booking]))[0]


@router.post("/request", response_model=Envelope[BookingResponse], status_code=status.HTTP_201_CREATED)
async def request_booking(
    booking_data: BookingRequest,
    current_user: User = Depends(require_verified),
    db: AsyncSession = Depends(get_db)
):
    """
    Request seats on a scheduled ride.

    Seats are not held until the driver approves.
    """
    booking = await BookingService.request_booking(db, current_user, booking_data)
    return Envelope(message="Booking request sent successfully", data=await _booking_response(db, booking))


@router.get("/my-bookings", response_model=Envelope[List[BookingResponse]])
async def get_my_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """The caller's bookings as passenger, newest first."""
    bookings = await BookingService.list_for_passenger(db, current_user, booking_status)
    return Envelope(data=await _booking_responses(db, bookings))


@router.get("/ride/{ride_id}", response_model=Envelope[List[BookingResponse]])
async def get_ride_bookings(
    ride_id: int = Path(..., description="Ride ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """All bookings of a ride (its driver only)."""
    bookings = await BookingService.list_for_ride(db, current_user, ride_id)
    return Envelope(data=await _booking_responses(db, bookings))


@router.put("/{booking_id}/approve", response_model=Envelope[BookingResponse])
async def approve_booking(
    booking_id: int = Path(..., description="Booking ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    booking = await BookingService.approve_booking(db, current_user, booking_id)
    return Envelope(message="Booking approved successfully", data=await _booking_response(db, booking))


@router.put("/{booking_id}/reject", response_model=Envelope[BookingResponse])
async def reject_booking(
    booking_id: int = Path(..., description="Booking ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    booking = await BookingService.reject_booking(db, current_user, booking_id)
    return Envelope(message="Booking rejected", data=await _booking_response(db, booking))


@router.delete("/{booking_id}/cancel", response_model=Envelope[BookingResponse])
async def cancel_booking(
    booking_id: int = Path(..., description="Booking ID"),
    cancel_data: Optional[BookingCancel] = Body(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Cancel a pending or confirmed booking (passenger only)."""
    reason = cancel_data.reason if cancel_data else None
    booking = await BookingService.cancel_booking(db, current_user, booking_id, reason)
    return Envelope(message="Booking cancelled successfully", data=await _booking_response(db, booking))


@router.put("/{booking_id}/payment", response_model=Envelope[BookingResponse])
async def mark_payment(
    booking_id: int = Path(..., description="Booking ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark a booking as paid (driver or passenger)."""
    booking = await BookingService.mark_paid(db, current_user, booking_id)
    return Envelope(message="Payment status updated", data=await _booking_response(db, booking))
