"""
Booking Service (Domain Logic).

Owns the booking state machine:

    pending -> confirmed | rejected
    pending | confirmed -> cancelled

Each transition checks its preconditions, mutates, notifies and commits
once. A failed precondition raises before anything is written. The status
change itself is a conditional UPDATE on the status that was read, so two
requests racing on the same booking cannot both move seats or the roster.
"""

import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, desc
from sqlalchemy.exc import IntegrityError

from unipool.app.core.exceptions import (
    ResourceNotFoundError, InsufficientPermissionsError, InvalidStateError,
    ConflictError, SeatContentionError
)
from unipool.app.models.booking import Booking
from unipool.app.models.booking_enums import BookingStatus, PaymentStatus, ACTIVE_BOOKING_STATUSES
from unipool.app.models.notification import NotificationType
from unipool.app.models.ride import Ride
from unipool.app.models.ride_enums import RideStatus
from unipool.app.models.user import User
from unipool.app.schemas.booking import BookingRequest
from unipool.app.services.notification_service import NotificationService
from unipool.app.services.seat_inventory import (
    load_ride, reserve_seats, release_seats, add_to_roster, remove_from_roster
)

logger = logging.getLogger(__name__)


class BookingService:

    @staticmethod
    async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
        result = await db.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if not booking:
            raise ResourceNotFoundError("Booking", booking_id)
        return booking

    @staticmethod
    async def _transition(db: AsyncSession, booking_id: int, expected: BookingStatus, **values) -> None:
        """
        Move a booking out of `expected` in one conditional UPDATE.

        If another request already moved it, no row matches: the transaction
        is rolled back before any seat or roster change and InvalidState is raised.
        """
        result = await db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.rollback()
            logger.warning(
                "Booking transition did not apply",
                extra={"booking_id": booking_id, "expected_status": expected.value}
            )
            raise InvalidStateError(
                "Booking was changed by another request",
                {"expected_status": expected.value}
            )

    @staticmethod
    async def _reload(db: AsyncSession, booking_id: int) -> Booking:
        return await db.get(Booking, booking_id, populate_existing=True)

    @staticmethod
    async def _ride_for_driver_action(db: AsyncSession, booking: Booking, user: User, action: str) -> Ride:
        """
        Load the booking's ride and require the caller to be its driver.

        The ride's live driver is authoritative; the copy on the booking is
        only compared to flag drift.
        """
        ride = await load_ride(db, booking.ride_id)
        if booking.driver_id != ride.driver_id:
            logger.warning(
                "Booking driver does not match ride driver",
                extra={"booking_id": booking.id, "booking_driver_id": booking.driver_id, "ride_driver_id": ride.driver_id}
            )
        if ride.driver_id != user.id:
            raise InsufficientPermissionsError(f"Only the ride's driver can {action} this booking")
        return ride

    @staticmethod
    async def request_booking(db: AsyncSession, passenger: User, payload: BookingRequest) -> Booking:
        """
        Create a pending booking.

        Flow:
        1. Ride exists and is scheduled
        2. Caller is not the ride's driver
        3. Enough seats remain right now (nothing is reserved until approval)
        4. Caller holds no pending/confirmed booking on this ride
        5. Insert with amount_due fixed at ride price x seats
        6. Notify the driver
        """
        ride = await load_ride(db, payload.ride_id)

        if ride.status != RideStatus.SCHEDULED:
            raise InvalidStateError("Ride is not available for booking", {"ride_status": ride.status.value})

        if ride.driver_id == passenger.id:
            raise InvalidStateError("You cannot book your own ride")

        if payload.seats_requested > ride.available_seats:
            raise InvalidStateError(
                f"Only {ride.available_seats} seat(s) available",
                {"available_seats": ride.available_seats, "seats_requested": payload.seats_requested}
            )

        existing = await db.execute(
            select(Booking.id).where(
                Booking.ride_id == ride.id,
                Booking.passenger_id == passenger.id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES)
            )
        )
        if existing.first():
            raise ConflictError("You already have an active booking for this ride")

        booking = Booking(
            ride_id=ride.id,
            passenger_id=passenger.id,
            driver_id=ride.driver_id,
            status=BookingStatus.PENDING,
            seats_requested=payload.seats_requested,
            amount_due=ride.cost_per_passenger * payload.seats_requested,
            payment_method=payload.payment_method,
            message=payload.message,
        )
        db.add(booking)
        try:
            await db.flush()
        except IntegrityError:
            # A concurrent request from the same passenger won the unique index
            await db.rollback()
            raise ConflictError("You already have an active booking for this ride")

        await NotificationService.create_notification(
            db,
            user_id=ride.driver_id,
            title="New booking request",
            message=f"{passenger.name} requested {payload.seats_requested} seat(s) from {ride.origin} to {ride.destination}",
            type=NotificationType.BOOKING_REQUESTED,
            metadata={"booking_id": booking.id, "ride_id": ride.id}
        )
        await db.commit()

        logger.info("Booking requested", extra={"booking_id": booking.id, "ride_id": ride.id})
        return booking

    @staticmethod
    async def approve_booking(db: AsyncSession, driver: User, booking_id: int) -> Booking:
        """
        Confirm a pending booking and take its seats.

        Flow:
        1. Caller is the ride's driver
        2. Booking is pending
        3. Seats re-checked (pending requests hold none)
        4. Conditional pending -> confirmed; a second approval of the same
           booking matches no row and is refused
        5. Conditional seat decrement; a concurrent approval of another
           booking that got there first turns this into a retryable conflict
           with nothing written
        6. Append to roster, notify the passenger
        """
        booking = await BookingService.get_booking(db, booking_id)
        ride = await BookingService._ride_for_driver_action(db, booking, driver, "approve")

        if booking.status != BookingStatus.PENDING:
            raise InvalidStateError("Booking is not pending", {"status": booking.status.value})

        if ride.available_seats < booking.seats_requested:
            raise InvalidStateError(
                "Not enough seats available",
                {"available_seats": ride.available_seats, "seats_requested": booking.seats_requested}
            )

        await BookingService._transition(
            db, booking.id, BookingStatus.PENDING,
            status=BookingStatus.CONFIRMED,
            confirmed_at=datetime.utcnow(),
        )

        if not await reserve_seats(db, ride.id, booking.seats_requested):
            await db.rollback()
            raise SeatContentionError(ride.id, booking.seats_requested)

        await add_to_roster(db, ride.id, booking.passenger_id)

        await NotificationService.create_notification(
            db,
            user_id=booking.passenger_id,
            title="Booking approved",
            message=f"Your booking from {ride.origin} to {ride.destination} was approved",
            type=NotificationType.BOOKING_APPROVED,
            metadata={"booking_id": booking.id, "ride_id": ride.id}
        )
        await db.commit()

        logger.info("Booking approved", extra={"booking_id": booking.id, "ride_id": ride.id})
        return await BookingService._reload(db, booking.id)

    @staticmethod
    async def reject_booking(db: AsyncSession, driver: User, booking_id: int) -> Booking:
        booking = await BookingService.get_booking(db, booking_id)
        ride = await BookingService._ride_for_driver_action(db, booking, driver, "reject")

        if booking.status != BookingStatus.PENDING:
            raise InvalidStateError("Booking is not pending", {"status": booking.status.value})

        await BookingService._transition(
            db, booking.id, BookingStatus.PENDING,
            status=BookingStatus.REJECTED,
            rejected_at=datetime.utcnow(),
        )

        await NotificationService.create_notification(
            db,
            user_id=booking.passenger_id,
            title="Booking rejected",
            message=f"Your booking from {ride.origin} to {ride.destination} was rejected",
            type=NotificationType.BOOKING_REJECTED,
            metadata={"booking_id": booking.id, "ride_id": ride.id}
        )
        await db.commit()

        logger.info("Booking rejected", extra={"booking_id": booking.id, "ride_id": ride.id})
        return await BookingService._reload(db, booking.id)

    @staticmethod
    async def cancel_booking(db: AsyncSession, passenger: User, booking_id: int, reason: Optional[str] = None) -> Booking:
        """
        Cancel a pending or confirmed booking (passenger only).

        A confirmed booking gives back exactly its seats and one roster entry.
        The status change is conditional on the status read here, so a
        repeated cancel cannot release the seats twice.
        """
        booking = await BookingService.get_booking(db, booking_id)

        if booking.passenger_id != passenger.id:
            raise InsufficientPermissionsError("Only the passenger can cancel this booking")

        if booking.status == BookingStatus.CANCELLED:
            raise InvalidStateError("Booking is already cancelled")
        if booking.status == BookingStatus.REJECTED:
            raise InvalidStateError("Rejected bookings cannot be cancelled")

        ride = await load_ride(db, booking.ride_id)
        was_confirmed = booking.status == BookingStatus.CONFIRMED

        await BookingService._transition(
            db, booking.id, booking.status,
            status=BookingStatus.CANCELLED,
            cancelled_at=datetime.utcnow(),
            cancellation_reason=reason,
        )

        if was_confirmed:
            await release_seats(db, ride.id, booking.seats_requested)
            await remove_from_roster(db, ride.id, booking.passenger_id)

        await NotificationService.create_notification(
            db,
            user_id=ride.driver_id,
            title="Booking cancelled",
            message=f"{passenger.name} cancelled their booking from {ride.origin} to {ride.destination}",
            type=NotificationType.BOOKING_CANCELLED,
            metadata={"booking_id": booking.id, "ride_id": ride.id}
        )
        await db.commit()

        logger.info(
            "Booking cancelled",
            extra={"booking_id": booking.id, "ride_id": ride.id, "seats_restored": booking.seats_requested if was_confirmed else 0}
        )
        return await BookingService._reload(db, booking.id)

    @staticmethod
    async def mark_paid(db: AsyncSession, user: User, booking_id: int) -> Booking:
        """Set payment_status to paid. Booking status is left alone."""
        booking = await BookingService.get_booking(db, booking_id)
        ride = await load_ride(db, booking.ride_id)

        if user.id not in (ride.driver_id, booking.passenger_id):
            raise InsufficientPermissionsError("Not authorized to update payment for this booking")

        booking.payment_status = PaymentStatus.PAID
        await db.commit()
        return booking

    @staticmethod
    async def list_for_passenger(
        db: AsyncSession,
        passenger: User,
        status: Optional[BookingStatus] = None
    ) -> List[Booking]:
        query = select(Booking).where(Booking.passenger_id == passenger.id)
        if status:
            query = query.where(Booking.status == status)
        query = query.order_by(desc(Booking.requested_at), desc(Booking.id))
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def list_for_ride(db: AsyncSession, driver: User, ride_id: int) -> List[Booking]:
        ride = await load_ride(db, ride_id)
        if ride.driver_id != driver.id:
            raise InsufficientPermissionsError("Only the ride's driver can view its bookings")

        result = await db.execute(
            select(Booking)
            .where(Booking.ride_id == ride_id)
            .order_by(desc(Booking.requested_at), desc(Booking.id))
        )
        return list(result.scalars().all())
