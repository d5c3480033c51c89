"""
Seat inventory service.

Owns the seat count and passenger roster of a ride. Booking transitions are
the only callers that mutate either; none of these functions commit.
"""

import logging
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, case

from unipool.app.core.exceptions import ResourceNotFoundError
from unipool.app.models.ride import Ride, RidePassenger
from unipool.app.models.user import User

logger = logging.getLogger(__name__)


async def load_ride(db: AsyncSession, ride_id: int) -> Ride:
    """
    Load a ride, refreshing any stale copy in the session.

    Raises:
        ResourceNotFoundError: if the ride does not exist
    """
    result = await db.execute(
        select(Ride)
        .where(Ride.id == ride_id)
        .execution_options(populate_existing=True)
    )
    ride = result.scalar_one_or_none()
    if not ride:
        raise ResourceNotFoundError("Ride", ride_id)
    return ride


async def reserve_seats(db: AsyncSession, ride_id: int, seats: int) -> bool:
    """
    Take `seats` from a ride in one conditional UPDATE.

    The decrement only applies while enough seats remain, so two concurrent
    approvals cannot oversell the ride.

    Returns:
        True if the seats were reserved, False if the condition did not hold
    """
    result = await db.execute(
        update(Ride)
        .where(Ride.id == ride_id, Ride.available_seats >= seats)
        .values(available_seats=Ride.available_seats - seats)
        .execution_options(synchronize_session=False)
    )
    applied = result.rowcount == 1
    if not applied:
        logger.warning("Seat reservation did not apply", extra={"ride_id": ride_id, "seats": seats})
    return applied


async def release_seats(db: AsyncSession, ride_id: int, seats: int) -> None:
    """Give `seats` back to a ride, capped at its total capacity."""
    restored = Ride.available_seats + seats
    await db.execute(
        update(Ride)
        .where(Ride.id == ride_id)
        .values(available_seats=case((restored > Ride.total_seats, Ride.total_seats), else_=restored))
        .execution_options(synchronize_session=False)
    )


async def add_to_roster(db: AsyncSession, ride_id: int, passenger_id: int) -> RidePassenger:
    entry = RidePassenger(ride_id=ride_id, passenger_id=passenger_id)
    db.add(entry)
    await db.flush()
    return entry


async def remove_from_roster(db: AsyncSession, ride_id: int, passenger_id: int) -> bool:
    """
    Remove exactly one roster entry (the earliest) for the passenger.

    Returns:
        False if the passenger was not on the roster
    """
    result = await db.execute(
        select(RidePassenger.id)
        .where(RidePassenger.ride_id == ride_id, RidePassenger.passenger_id == passenger_id)
        .order_by(RidePassenger.id)
        .limit(1)
    )
    entry_id = result.scalar_one_or_none()
    if entry_id is None:
        logger.warning(
            "Confirmed passenger missing from roster",
            extra={"ride_id": ride_id, "passenger_id": passenger_id}
        )
        return False

    await db.execute(
        delete(RidePassenger)
        .where(RidePassenger.id == entry_id)
        .execution_options(synchronize_session=False)
    )
    return True


async def get_roster_ids(db: AsyncSession, ride_id: int) -> List[int]:
    """Passenger ids in roster order; a passenger may appear more than once."""
    result = await db.execute(
        select(RidePassenger.passenger_id)
        .where(RidePassenger.ride_id == ride_id)
        .order_by(RidePassenger.id)
    )
    return list(result.scalars().all())


async def get_roster_users(db: AsyncSession, ride_id: int) -> List[User]:
    result = await db.execute(
        select(User)
        .join(RidePassenger, RidePassenger.passenger_id == User.id)
        .where(RidePassenger.ride_id == ride_id)
        .order_by(RidePassenger.id)
    )
    return list(result.scalars().all())
