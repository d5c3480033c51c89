"""
Failure Injection Tests.

The rating recompute runs after the review commits. When it keeps failing
the review stands and the task lands in the dead-letter queue.
"""

import pytest
from sqlalchemy import select, update

from unipool.app.core.reliability import retry_async, RetryExhaustedError
from unipool.app.models.dlq import DeadLetterQueue
from unipool.app.models.user import User
from unipool.app.services.ratings import RECOMPUTE_RATING_TASK, recompute_all_ratings
from conftest import API, auth_headers
from test_reviews import completed_ride, submit_review, me

RATINGS = "unipool.app.services.ratings"


@pytest.mark.asyncio
async def test_retry_async_recovers_after_transient_failures():
    calls = []

    async def flaky(value):
        calls.append(value)
        if len(calls) < 3:
            raise ConnectionError("transient")
        return value * 2

    assert await retry_async(flaky, 21, attempts=3, backoff_seconds=0) == 42
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_retry_async_gives_up():
    async def always_fails():
        raise ValueError("Boom")

    with pytest.raises(RetryExhaustedError) as exc_info:
        await retry_async(always_fails, attempts=2, backoff_seconds=0, task_name="boom")

    assert exc_info.value.task_name == "boom"
    assert exc_info.value.attempts == 2
    assert isinstance(exc_info.value.last_error, ValueError)


@pytest.mark.asyncio
async def test_failed_recompute_is_dead_lettered_and_retried(client, driver, passenger, admin, mocker):
    ride = await completed_ride(client, driver, passenger)

    failing = mocker.patch(f"{RATINGS}.recompute_user_rating", side_effect=RuntimeError("db hiccup"))
    response = await submit_review(client, passenger["token"], ride["id"], driver["user"]["id"], 4)
    mocker.stopall()

    # The review stands even though its aggregate was not updated
    assert response.status_code == 201
    assert failing.call_count == 3
    assert (await me(client, driver))["driver_rating"] == {"average": 0.0, "count": 0}

    dlq = await client.get(
        f"{API}/admin/ops/dlq", params={"status": "FAILED"}, headers=auth_headers(admin["token"])
    )
    entries = dlq.json()["data"]
    assert len(entries) == 1
    entry = entries[0]
    assert entry["task_name"] == RECOMPUTE_RATING_TASK
    assert entry["payload"] == {"user_id": driver["user"]["id"], "review_type": "driver"}
    assert "db hiccup" in entry["error_message"]

    retry = await client.post(f"{API}/admin/ops/dlq/{entry['id']}/retry", headers=auth_headers(admin["token"]))
    assert retry.status_code == 200
    assert retry.json()["data"]["status"] == "PROCESSED"
    assert retry.json()["data"]["retry_count"] == 1

    assert (await me(client, driver))["driver_rating"] == {"average": 4.0, "count": 1}

    again = await client.post(f"{API}/admin/ops/dlq/{entry['id']}/retry", headers=auth_headers(admin["token"]))
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_review_stands_when_dead_letter_write_fails(client, driver, passenger, admin, mocker):
    ride = await completed_ride(client, driver, passenger)

    mocker.patch(f"{RATINGS}.recompute_user_rating", side_effect=RuntimeError("db hiccup"))
    # A queue entry without a task name violates NOT NULL at commit
    mocker.patch(f"{RATINGS}.RECOMPUTE_RATING_TASK", None)
    response = await submit_review(client, passenger["token"], ride["id"], driver["user"]["id"], 4)
    mocker.stopall()

    assert response.status_code == 201
    assert response.json()["data"]["rating"] == 4

    received = await client.get(f"{API}/reviews/user/{driver['user']['id']}")
    assert [r["rating"] for r in received.json()["data"]] == [4]

    dlq = await client.get(f"{API}/admin/ops/dlq", headers=auth_headers(admin["token"]))
    assert dlq.json()["data"] == []

    # The repair job still brings the aggregate in line
    await client.post(f"{API}/admin/ops/ratings/recompute", headers=auth_headers(admin["token"]))
    assert (await me(client, driver))["driver_rating"] == {"average": 4.0, "count": 1}


@pytest.mark.asyncio
async def test_failed_dead_letter_retry_stays_failed(client, admin, db_session, mocker):
    entry = DeadLetterQueue(
        task_name=RECOMPUTE_RATING_TASK,
        error_message="original",
        payload={"user_id": admin["user"]["id"], "review_type": "driver"},
    )
    db_session.add(entry)
    await db_session.commit()

    mocker.patch(f"{RATINGS}.recompute_user_rating", side_effect=RuntimeError("still down"))
    response = await client.post(f"{API}/admin/ops/dlq/{entry.id}/retry", headers=auth_headers(admin["token"]))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "FAILED"
    assert data["retry_count"] == 1
    assert data["error_message"] == "still down"


@pytest.mark.asyncio
async def test_unknown_task_has_no_retry_handler(client, admin, db_session):
    entry = DeadLetterQueue(task_name="send_sms", error_message="gateway timeout", payload={})
    db_session.add(entry)
    await db_session.commit()

    response = await client.post(f"{API}/admin/ops/dlq/{entry.id}/retry", headers=auth_headers(admin["token"]))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_repair_job_rebuilds_drifted_aggregates(client, driver, passenger, admin, db_session):
    ride = await completed_ride(client, driver, passenger)
    await submit_review(client, passenger["token"], ride["id"], driver["user"]["id"], 3)

    # Drift the stored aggregate
    await db_session.execute(
        update(User)
        .where(User.id == driver["user"]["id"])
        .values(driver_rating_average=1.0, driver_rating_count=9)
    )
    await db_session.commit()
    assert (await me(client, driver))["driver_rating"] == {"average": 1.0, "count": 9}

    response = await client.post(f"{API}/admin/ops/ratings/recompute", headers=auth_headers(admin["token"]))
    assert response.status_code == 200
    assert response.json()["data"]["users_updated"] == 3

    assert (await me(client, driver))["driver_rating"] == {"average": 3.0, "count": 1}


@pytest.mark.asyncio
async def test_recompute_all_ratings_is_idempotent(client, driver, passenger, db_session):
    ride = await completed_ride(client, driver, passenger)
    await submit_review(client, driver["token"], ride["id"], passenger["user"]["id"], 2)

    assert await recompute_all_ratings(db_session) == 2
    assert await recompute_all_ratings(db_session) == 2

    user = (await db_session.execute(
        select(User).where(User.id == passenger["user"]["id"]).execution_options(populate_existing=True)
    )).scalar_one()
    assert user.passenger_rating_average == 2.0
    assert user.passenger_rating_count == 1


@pytest.mark.asyncio
async def test_dlq_requires_admin(client, passenger):
    response = await client.get(f"{API}/admin/ops/dlq", headers=auth_headers(passenger["token"]))
    assert response.status_code == 403
