"""
Integration tests for Ride Inventory.

Covers posting, search, editing, cancellation and completion.
"""

from datetime import date, datetime, timedelta

import pytest

from unipool.app.models.ride import Ride
from unipool.app.models.ride_enums import RideStatus
from unipool.app.services.schedule import local_day_bounds, local_zone
from conftest import API, auth_headers, create_ride, future_date, get_ride, request_booking

@pytest.mark.asyncio
async def test_driver_creates_ride(client, driver):
    ride = await create_ride(client, driver["token"], seats=3, notes="Leaving from the main gate")

    assert ride["driver_id"] == driver["user"]["id"]
    assert ride["total_seats"] == 3
    assert ride["available_seats"] == 3
    assert ride["status"] == "scheduled"
    assert ride["departure_time"] == "08:30"
    assert ride["preferences"] == {
        "non_smoking": True,
        "ac_available": False,
        "music_allowed": True,
        "pets_allowed": False,
    }
    assert ride["driver"]["name"] == "Dana Driver"
    assert ride["passengers"] == []

@pytest.mark.asyncio
async def test_passenger_cannot_create_ride(client, passenger):
    response = await client.post(
        f"{API}/rides",
        json={
            "origin": "Gulberg",
            "destination": "LUMS",
            "date": future_date(),
            "time": "09:00",
            "available_seats": 2,
            "cost_per_passenger": 200,
        },
        headers=auth_headers(passenger["token"]),
    )
    assert response.status_code == 403

@pytest.mark.asyncio
async def test_ride_in_the_past_is_invalid_schedule(client, driver):
    yesterday = (date.today() - timedelta(days=1)).isoformat()
    response = await client.post(
        f"{API}/rides",
        json={
            "origin": "Gulberg",
            "destination": "LUMS",
            "date": yesterday,
            "time": "09:00",
            "available_seats": 2,
            "cost_per_passenger": 200,
        },
        headers=auth_headers(driver["token"]),
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_STATE_002"

@pytest.mark.asyncio
@pytest.mark.parametrize("field,value", [
    ("available_seats", 0),
    ("available_seats", 5),
    ("cost_per_passenger", -1),
    ("time", "25:00"),
])
async def test_ride_input_validation(client, driver, field, value):
    payload = {
        "origin": "Gulberg",
        "destination": "LUMS",
        "date": future_date(),
        "time": "09:00",
        "available_seats": 2,
        "cost_per_passenger": 200,
        field: value,
    }
    response = await client.post(f"{API}/rides", json=payload, headers=auth_headers(driver["token"]))
    assert response.status_code == 400

@pytest.mark.asyncio
async def test_search_filters_and_ordering(client, driver):
    later = await create_ride(client, driver["token"], date=future_date(5), origin="Model Town")
    sooner = await create_ride(client, driver["token"], date=future_date(2), origin="model town block C")
    await create_ride(client, driver["token"], date=future_date(2), origin="Johar Town")
    full = await create_ride(client, driver["token"], seats=1, origin="Model Town", date=future_date(3))

    response = await client.get(f"{API}/rides/search", params={"origin": "MODEL town"})
    assert response.status_code == 200
    ids = [r["id"] for r in response.json()["data"]]
    assert ids == [sooner["id"], full["id"], later["id"]]

    response = await client.get(f"{API}/rides/search", params={"origin": "model", "min_seats": 2})
    ids = [r["id"] for r in response.json()["data"]]
    assert full["id"] not in ids

    response = await client.get(f"{API}/rides/search", params={"date": future_date(2)})
    ids = {r["id"] for r in response.json()["data"]}
    assert sooner["id"] in ids
    assert later["id"] not in ids


def _ride_row(driver, departure_at, origin="DHA Phase 5"):
    return Ride(
        driver_id=driver["user"]["id"],
        origin=origin,
        destination="LUMS",
        departure_at=departure_at,
        departure_time=departure_at.strftime("%H:%M"),
        total_seats=2,
        available_seats=2,
        cost_per_passenger=250,
        status=RideStatus.SCHEDULED,
    )

@pytest.mark.asyncio
async def test_search_returns_at_most_fifty_earliest_rides(client, driver, db_session):
    base = datetime.utcnow() + timedelta(days=1)
    departures = [base + timedelta(minutes=i) for i in range(55)]
    # Inserted latest first so id order differs from departure order
    rides = [_ride_row(driver, departure_at) for departure_at in reversed(departures)]
    db_session.add_all(rides)
    await db_session.commit()

    response = await client.get(f"{API}/rides/search")
    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data) == 50

    expected = [ride.id for ride in sorted(rides, key=lambda r: r.departure_at)][:50]
    assert [r["id"] for r in data] == expected

@pytest.mark.asyncio
async def test_search_without_date_skips_past_departures(client, driver, db_session):
    today = datetime.now(local_zone()).date()
    start_of_today, _ = local_day_bounds(today)
    past = _ride_row(driver, start_of_today, origin="Gulberg")
    db_session.add(past)
    await db_session.commit()
    upcoming = await create_ride(client, driver["token"], origin="Gulberg")

    response = await client.get(f"{API}/rides/search", params={"origin": "gulberg"})
    assert [r["id"] for r in response.json()["data"]] == [upcoming["id"]]

    # A date filter covers the whole day, earlier hours included
    response = await client.get(f"{API}/rides/search", params={"origin": "gulberg", "date": today.isoformat()})
    assert past.id in [r["id"] for r in response.json()["data"]]

@pytest.mark.asyncio
async def test_search_excludes_cancelled_rides(client, driver):
    ride = await create_ride(client, driver["token"])
    await client.delete(f"{API}/rides/{ride['id']}", headers=auth_headers(driver["token"]))

    response = await client.get(f"{API}/rides/search")
    assert response.json()["data"] == []

@pytest.mark.asyncio
async def test_my_rides_lists_driver_rides(client, driver):
    first = await create_ride(client, driver["token"], date=future_date(2))
    second = await create_ride(client, driver["token"], date=future_date(4))

    response = await client.get(f"{API}/rides/my-rides", headers=auth_headers(driver["token"]))
    assert [r["id"] for r in response.json()["data"]] == [second["id"], first["id"]]

    response = await client.get(
        f"{API}/rides/my-rides", params={"status": "completed"}, headers=auth_headers(driver["token"])
    )
    assert response.json()["data"] == []

@pytest.mark.asyncio
async def test_get_unknown_ride_is_404(client):
    response = await client.get(f"{API}/rides/9999")
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"

@pytest.mark.asyncio
async def test_update_uses_allow_list(client, driver):
    ride = await create_ride(client, driver["token"], seats=2)

    response = await client.put(
        f"{API}/rides/{ride['id']}",
        json={
            "time": "10:15",
            "cost_per_passenger": 300,
            "notes": "Updated",
            "available_seats": 4,
            "origin": "Elsewhere",
        },
        headers=auth_headers(driver["token"]),
    )

    assert response.status_code == 200
    updated = response.json()["data"]
    assert updated["departure_time"] == "10:15"
    assert updated["cost_per_passenger"] == 300
    assert updated["notes"] == "Updated"
    assert updated["available_seats"] == 2
    assert updated["total_seats"] == 2
    assert updated["origin"] == ride["origin"]

@pytest.mark.asyncio
async def test_only_owner_can_update_or_cancel(client, driver, passenger):
    ride = await create_ride(client, driver["token"])

    update = await client.put(
        f"{API}/rides/{ride['id']}", json={"notes": "hijack"}, headers=auth_headers(passenger["token"])
    )
    assert update.status_code == 403

    cancel = await client.delete(f"{API}/rides/{ride['id']}", headers=auth_headers(passenger["token"]))
    assert cancel.status_code == 403

@pytest.mark.asyncio
async def test_cancel_ride_notifies_booked_passengers(client, driver, passenger):
    ride = await create_ride(client, driver["token"])
    await request_booking(client, passenger["token"], ride["id"])

    response = await client.delete(f"{API}/rides/{ride['id']}", headers=auth_headers(driver["token"]))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "cancelled"

    notifications = await client.get(f"{API}/notifications", headers=auth_headers(passenger["token"]))
    types = [n["type"] for n in notifications.json()["data"]]
    assert "RIDE_CANCELLED" in types

    again = await client.delete(f"{API}/rides/{ride['id']}", headers=auth_headers(driver["token"]))
    assert again.status_code == 400

@pytest.mark.asyncio
async def test_complete_ride_updates_counters_and_locks_state(client, driver, passenger):
    ride = await create_ride(client, driver["token"], seats=2, cost_per_passenger=200)
    booking = (await request_booking(client, passenger["token"], ride["id"], seats=2)).json()["data"]
    await client.put(f"{API}/bookings/{booking['id']}/approve", headers=auth_headers(driver["token"]))

    response = await client.post(f"{API}/rides/{ride['id']}/complete", headers=auth_headers(driver["token"]))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "completed"

    driver_me = (await client.get(f"{API}/auth/me", headers=auth_headers(driver["token"]))).json()["data"]
    assert driver_me["rides_as_driver"] == 1
    assert driver_me["total_earnings"] == 400

    passenger_me = (await client.get(f"{API}/auth/me", headers=auth_headers(passenger["token"]))).json()["data"]
    assert passenger_me["rides_as_passenger"] == 1

    again = await client.post(f"{API}/rides/{ride['id']}/complete", headers=auth_headers(driver["token"]))
    assert again.status_code == 400

    cancel = await client.delete(f"{API}/rides/{ride['id']}", headers=auth_headers(driver["token"]))
    assert cancel.status_code == 400

    update = await client.put(
        f"{API}/rides/{ride['id']}", json={"notes": "late edit"}, headers=auth_headers(driver["token"])
    )
    assert update.status_code == 400

    assert (await get_ride(client, ride["id"]))["notes"] is None
