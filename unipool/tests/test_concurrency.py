"""
Concurrency Tests.

Seat reservation must hold under interleaved approvals, and a passenger can
hold only one active booking per ride even if two requests race.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

from unipool.app.domain.bookings.booking_service import BookingService
from unipool.app.models.booking import Booking
from unipool.app.models.booking_enums import BookingStatus
from unipool.app.services.seat_inventory import load_ride, reserve_seats, release_seats
from conftest import API, auth_headers, create_ride, get_ride, request_booking

BOOKING_SERVICE = "unipool.app.domain.bookings.booking_service"


@pytest.mark.asyncio
async def test_reserve_seats_is_conditional(client, driver, db_session):
    ride = await create_ride(client, driver["token"], seats=2)

    assert await reserve_seats(db_session, ride["id"], 2) is True
    assert await reserve_seats(db_session, ride["id"], 1) is False
    await db_session.commit()

    assert (await load_ride(db_session, ride["id"])).available_seats == 0

    # Restores never exceed capacity
    await release_seats(db_session, ride["id"], 5)
    await db_session.commit()

    assert (await load_ride(db_session, ride["id"])).available_seats == 2


@pytest.mark.asyncio
async def test_stale_seat_check_cannot_oversell(client, driver, passenger, passenger_b, mocker):
    """
    Both requests pass the seat check; the first approval takes the seat.

    The second approval is handed a stale ride that still shows one seat,
    as a concurrent reader would see it. The conditional decrement refuses.
    """
    ride = await create_ride(client, driver["token"], seats=1)
    first = (await request_booking(client, passenger["token"], ride["id"], 1)).json()["data"]
    second = (await request_booking(client, passenger_b["token"], ride["id"], 1)).json()["data"]

    response = await client.put(f"{API}/bookings/{first['id']}/approve", headers=auth_headers(driver["token"]))
    assert response.status_code == 200

    stale = SimpleNamespace(
        id=ride["id"],
        driver_id=driver["user"]["id"],
        available_seats=1,
        origin=ride["origin"],
        destination=ride["destination"],
    )
    mocker.patch(f"{BOOKING_SERVICE}.load_ride", new_callable=AsyncMock, return_value=stale)

    response = await client.put(f"{API}/bookings/{second['id']}/approve", headers=auth_headers(driver["token"]))
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_CONFLICT_002"
    assert response.json()["details"] == {"ride_id": ride["id"], "seats_requested": 1}

    mocker.stopall()

    state = await get_ride(client, ride["id"])
    assert state["available_seats"] == 0
    assert [p["id"] for p in state["passengers"]] == [passenger["user"]["id"]]

    bookings = await client.get(f"{API}/bookings/my-bookings", headers=auth_headers(passenger_b["token"]))
    assert bookings.json()["data"][0]["status"] == "pending"


def _stale_booking(booking, driver, status):
    """A booking as a reader that loaded it before the last transition would see it."""
    return SimpleNamespace(
        id=booking["id"],
        ride_id=booking["ride_id"],
        passenger_id=booking["passenger_id"],
        driver_id=driver["user"]["id"],
        status=status,
        seats_requested=booking["seats_requested"],
    )


@pytest.mark.asyncio
async def test_repeated_cancel_restores_seats_once(client, driver, passenger, passenger_b, mocker):
    ride = await create_ride(client, driver["token"], seats=2)
    first = (await request_booking(client, passenger["token"], ride["id"], 1)).json()["data"]
    second = (await request_booking(client, passenger_b["token"], ride["id"], 1)).json()["data"]
    for booking in (first, second):
        response = await client.put(f"{API}/bookings/{booking['id']}/approve", headers=auth_headers(driver["token"]))
        assert response.status_code == 200

    response = await client.delete(f"{API}/bookings/{first['id']}/cancel", headers=auth_headers(passenger["token"]))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "cancelled"
    assert (await get_ride(client, ride["id"]))["available_seats"] == 1

    # Second cancel races the first and still believes the booking is confirmed
    mocker.patch.object(
        BookingService, "get_booking", new_callable=AsyncMock,
        return_value=_stale_booking(first, driver, BookingStatus.CONFIRMED)
    )
    response = await client.delete(f"{API}/bookings/{first['id']}/cancel", headers=auth_headers(passenger["token"]))
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_STATE_001"

    mocker.stopall()

    state = await get_ride(client, ride["id"])
    assert state["available_seats"] == 1
    assert [p["id"] for p in state["passengers"]] == [passenger_b["user"]["id"]]


@pytest.mark.asyncio
async def test_repeated_approve_takes_seats_once(client, driver, passenger, mocker):
    ride = await create_ride(client, driver["token"], seats=2)
    booking = (await request_booking(client, passenger["token"], ride["id"], 1)).json()["data"]

    response = await client.put(f"{API}/bookings/{booking['id']}/approve", headers=auth_headers(driver["token"]))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "confirmed"

    mocker.patch.object(
        BookingService, "get_booking", new_callable=AsyncMock,
        return_value=_stale_booking(booking, driver, BookingStatus.PENDING)
    )
    response = await client.put(f"{API}/bookings/{booking['id']}/approve", headers=auth_headers(driver["token"]))
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_STATE_001"

    mocker.stopall()

    state = await get_ride(client, ride["id"])
    assert state["available_seats"] == 1
    assert [p["id"] for p in state["passengers"]] == [passenger["user"]["id"]]

    bookings = await client.get(f"{API}/bookings/my-bookings", headers=auth_headers(passenger["token"]))
    assert bookings.json()["data"][0]["status"] == "confirmed"


@pytest.mark.asyncio
async def test_lost_reservation_writes_nothing_and_can_be_retried(client, driver, passenger, mocker):
    ride = await create_ride(client, driver["token"], seats=2)
    booking = (await request_booking(client, passenger["token"], ride["id"], 1)).json()["data"]

    mocker.patch(f"{BOOKING_SERVICE}.reserve_seats", new_callable=AsyncMock, return_value=False)
    response = await client.put(f"{API}/bookings/{booking['id']}/approve", headers=auth_headers(driver["token"]))
    assert response.status_code == 409
    mocker.stopall()

    state = await get_ride(client, ride["id"])
    assert state["available_seats"] == 2
    assert state["passengers"] == []

    retry = await client.put(f"{API}/bookings/{booking['id']}/approve", headers=auth_headers(driver["token"]))
    assert retry.status_code == 200
    assert (await get_ride(client, ride["id"]))["available_seats"] == 1


@pytest.mark.asyncio
async def test_active_booking_unique_index(client, driver, passenger, db_session):
    """The partial unique index backs the duplicate check."""
    ride = await create_ride(client, driver["token"])

    def booking(status):
        return Booking(
            ride_id=ride["id"],
            passenger_id=passenger["user"]["id"],
            driver_id=driver["user"]["id"],
            status=status,
            seats_requested=1,
            amount_due=250,
        )

    # Terminal bookings do not count toward the index
    db_session.add_all([booking(BookingStatus.CANCELLED), booking(BookingStatus.REJECTED), booking(BookingStatus.PENDING)])
    await db_session.commit()

    db_session.add(booking(BookingStatus.CONFIRMED))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()
