"""
Ride API Endpoints.

Drivers post, edit, cancel and complete rides; anyone can search and view them.
Seat counts and rosters change only through booking transitions.
"""

import logging
from collections import Counter
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, desc

from unipool.app.db.session import get_db
from unipool.app.core.exceptions import InvalidStateError, InvalidScheduleError
from unipool.app.core.dependencies import get_current_user
from unipool.app.core.guards import require_driver, require_verified, ownership_guard
from unipool.app.models.booking import Booking
from unipool.app.models.booking_enums import BookingStatus, ACTIVE_BOOKING_STATUSES
from unipool.app.models.notification import NotificationType
from unipool.app.models.ride import Ride
from unipool.app.models.ride_enums import RideStatus, EDITABLE_RIDE_STATUSES, TERMINAL_RIDE_STATUSES
from unipool.app.models.user import User
from unipool.app.schemas.auth import UserSummary
from unipool.app.schemas.common import Envelope
from unipool.app.schemas.ride import RideCreate, RideUpdate, RideResponse
from unipool.app.services.notification_service import NotificationService
from unipool.app.services.schedule import combine_departure, local_date_of, local_day_bounds, is_in_future, utcnow
from unipool.app.services.seat_inventory import load_ride, get_roster_ids, get_roster_users

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rides", tags=["Rides"])

SEARCH_LIMIT = 50


async def _ride_response(db: AsyncSession, ride: Ride, with_roster: bool = True) -> RideResponse:
    data = RideResponse.model_validate(ride)
    driver = await db.get(User, ride.driver_id)
    if driver:
        data.driver = UserSummary.model_validate(driver)
    if with_roster:
        data.passengers = [UserSummary.model_validate(u) for u in await get_roster_users(db, ride.id)]
    return data


@router.post("", response_model=Envelope[RideResponse], status_code=status.HTTP_201_CREATED)
async def create_ride(
    ride_data: RideCreate,
    current_user: User = Depends(require_driver),
    _verified: User = Depends(require_verified),
    db: AsyncSession = Depends(get_db)
):
    """
    Post a new ride (drivers only).

    The departure must be strictly in the future. The requested seat count
    becomes both the capacity and the initial availability.
    """
    departure_at = combine_departure(ride_data.date, ride_data.time)
    if not is_in_future(departure_at):
        raise InvalidScheduleError()

    ride = Ride(
        driver_id=current_user.id,
        origin=ride_data.origin.strip(),
        destination=ride_data.destination.strip(),
        departure_at=departure_at,
        departure_time=ride_data.time,
        total_seats=ride_data.available_seats,
        available_seats=ride_data.available_seats,
        cost_per_passenger=ride_data.cost_per_passenger,
        preferences=ride_data.preferences.model_dump(),
        notes=ride_data.notes,
        status=RideStatus.SCHEDULED,
    )
    db.add(ride)
    await db.commit()

    logger.info("Ride created", extra={"ride_id": ride.id, "driver_id": current_user.id})
    return Envelope(message="Ride created successfully", data=await _ride_response(db, ride))


@router.get("/search", response_model=Envelope[List[RideResponse]])
async def search_rides(
    origin: Optional[str] = Query(None, description="Case-insensitive substring of the origin"),
    destination: Optional[str] = Query(None, description="Case-insensitive substring of the destination"),
    ride_date: Optional[date] = Query(None, alias="date", description="Whole local day (YYYY-MM-DD)"),
    min_seats: int = Query(1, ge=1, le=4, description="Minimum available seats"),
    db: AsyncSession = Depends(get_db)
):
    """
    Search scheduled rides.

    Without a date only future departures are returned. Ordered by departure, at most 50.
    """
    query = select(Ride).where(
        Ride.status == RideStatus.SCHEDULED,
        Ride.available_seats >= min_seats
    )

    if origin:
        query = query.where(func.lower(Ride.origin).contains(origin.strip().lower()))
    if destination:
        query = query.where(func.lower(Ride.destination).contains(destination.strip().lower()))

    if ride_date:
        start, end = local_day_bounds(ride_date)
        query = query.where(Ride.departure_at >= start, Ride.departure_at < end)
    else:
        query = query.where(Ride.departure_at > utcnow())

    query = query.order_by(Ride.departure_at, Ride.id).limit(SEARCH_LIMIT)
    rides = (await db.execute(query)).scalars().all()

    return Envelope(data=[await _ride_response(db, ride, with_roster=False) for ride in rides])


@router.get("/my-rides", response_model=Envelope[List[RideResponse]])
async def get_my_rides(
    ride_status: Optional[RideStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """The caller's rides as driver, newest departure first."""
    query = select(Ride).where(Ride.driver_id == current_user.id)
    if ride_status:
        query = query.where(Ride.status == ride_status)
    query = query.order_by(desc(Ride.departure_at), desc(Ride.id))
    rides = (await db.execute(query)).scalars().all()

    return Envelope(data=[await _ride_response(db, ride) for ride in rides])


@router.get("/{ride_id}", response_model=Envelope[RideResponse])
async def get_ride(
    ride_id: int = Path(..., description="Ride ID"),
    db: AsyncSession = Depends(get_db)
):
    """Ride details with driver and passenger roster."""
    ride = await load_ride(db, ride_id)
    return Envelope(data=await _ride_response(db, ride))


@router.put("/{ride_id}", response_model=Envelope[RideResponse])
async def update_ride(
    ride_data: RideUpdate,
    ride_id: int = Path(..., description="Ride ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Edit a ride (owner only).

    Only time, price, preferences and notes can change, and only while the
    ride is scheduled or in progress. A new time keeps the local date.
    """
    ride = await load_ride(db, ride_id)
    ownership_guard.enforce(ride.driver_id, current_user, "ride")

    if ride.status not in EDITABLE_RIDE_STATUSES:
        raise InvalidStateError("Cannot update completed or cancelled rides", {"ride_status": ride.status.value})

    updates = ride_data.model_dump(exclude_unset=True, exclude_none=True)

    if "time" in updates:
        departure_at = combine_departure(local_date_of(ride.departure_at), updates["time"])
        if not is_in_future(departure_at):
            raise InvalidScheduleError()
        ride.departure_at = departure_at
        ride.departure_time = updates["time"]
    if "cost_per_passenger" in updates:
        ride.cost_per_passenger = updates["cost_per_passenger"]
    if "preferences" in updates:
        ride.preferences = updates["preferences"]
    if "notes" in updates:
        ride.notes = updates["notes"]

    await db.commit()
    return Envelope(message="Ride updated successfully", data=await _ride_response(db, ride))


@router.delete("/{ride_id}", response_model=Envelope[RideResponse])
async def cancel_ride(
    ride_id: int = Path(..., description="Ride ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Cancel a ride (owner only).

    Bookings are left as they are; passengers holding pending or confirmed
    bookings are notified.
    """
    ride = await load_ride(db, ride_id)
    ownership_guard.enforce(ride.driver_id, current_user, "ride")

    if ride.status == RideStatus.COMPLETED:
        raise InvalidStateError("Cannot cancel completed ride")
    if ride.status == RideStatus.CANCELLED:
        raise InvalidStateError("Ride is already cancelled")

    ride.status = RideStatus.CANCELLED

    passenger_ids = (await db.execute(
        select(Booking.passenger_id).where(
            Booking.ride_id == ride.id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES)
        ).order_by(Booking.id)
    )).scalars().all()

    await NotificationService.notify_many(
        db,
        passenger_ids,
        title="Ride cancelled",
        message=f"The ride from {ride.origin} to {ride.destination} was cancelled by the driver",
        type=NotificationType.RIDE_CANCELLED,
        metadata={"ride_id": ride.id}
    )
    await db.commit()

    logger.info("Ride cancelled", extra={"ride_id": ride.id, "notified": len(set(passenger_ids))})
    return Envelope(message="Ride cancelled successfully", data=await _ride_response(db, ride))


@router.post("/{ride_id}/complete", response_model=Envelope[RideResponse])
async def complete_ride(
    ride_id: int = Path(..., description="Ride ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Mark a ride completed (owner only).

    Updates lifetime counters: the driver's rides and earnings (sum of
    confirmed bookings) and each roster passenger's rides.
    """
    ride = await load_ride(db, ride_id)
    ownership_guard.enforce(ride.driver_id, current_user, "ride")

    if ride.status in TERMINAL_RIDE_STATUSES:
        raise InvalidStateError(f"Ride is already {ride.status.value}")

    ride.status = RideStatus.COMPLETED

    earnings = (await db.execute(
        select(func.coalesce(func.sum(Booking.amount_due), 0.0)).where(
            Booking.ride_id == ride.id,
            Booking.status == BookingStatus.CONFIRMED
        )
    )).scalar() or 0.0

    await db.execute(
        update(User)
        .where(User.id == ride.driver_id)
        .values(
            rides_as_driver=User.rides_as_driver + 1,
            total_earnings=User.total_earnings + earnings
        )
        .execution_options(synchronize_session=False)
    )

    for passenger_id, rides in Counter(await get_roster_ids(db, ride.id)).items():
        await db.execute(
            update(User)
            .where(User.id == passenger_id)
            .values(rides_as_passenger=User.rides_as_passenger + rides)
            .execution_options(synchronize_session=False)
        )

    await db.commit()

    logger.info("Ride completed", extra={"ride_id": ride.id, "earnings": float(earnings)})
    return Envelope(message="Ride completed successfully", data=await _ride_response(db, ride))
