"""
Ride schedule helpers.

Rides are posted as a local date plus an HH:MM time in the configured
zone and stored as naive UTC instants.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple
from zoneinfo import ZoneInfo

from unipool.app.core.config import settings


def local_zone():
    if settings.timezone.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(settings.timezone)


def utcnow() -> datetime:
    return datetime.utcnow()


def parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def _to_naive_utc(local_dt: datetime) -> datetime:
    return local_dt.astimezone(timezone.utc).replace(tzinfo=None)


def combine_departure(ride_date: date, hhmm: str) -> datetime:
    """Combine a local date and HH:MM into a naive UTC departure instant."""
    local_dt = datetime.combine(ride_date, parse_hhmm(hhmm), tzinfo=local_zone())
    return _to_naive_utc(local_dt)


def local_date_of(departure_at: datetime) -> date:
    """Local calendar date of a stored UTC departure."""
    return departure_at.replace(tzinfo=timezone.utc).astimezone(local_zone()).date()


def local_day_bounds(day: date) -> Tuple[datetime, datetime]:
    """[start, end) of a whole local day, as naive UTC instants."""
    start = datetime.combine(day, time(0, 0), tzinfo=local_zone())
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=local_zone())
    return _to_naive_utc(start), _to_naive_utc(end)


def is_in_future(departure_at: datetime) -> bool:
    return departure_at > utcnow()
