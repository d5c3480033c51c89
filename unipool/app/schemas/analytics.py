"""
Analytics Schemas.
"""

from pydantic import BaseModel
from typing import List


class PlatformOverview(BaseModel):
    """Point-in-time counts."""
    total_users: int
    total_drivers: int
    total_rides: int
    completed_rides: int
    active_rides: int
    total_bookings: int
    confirmed_bookings: int
    pending_reports: int


class RecentActivity(BaseModel):
    """Trailing 7-day window."""
    new_users_last_week: int
    rides_last_week: int


class UniversityCount(BaseModel):
    university: str
    count: int


class RouteCount(BaseModel):
    origin: str
    destination: str
    count: int


class PlatformAnalytics(BaseModel):
    overview: PlatformOverview
    recent_activity: RecentActivity
    top_universities: List[UniversityCount]
    popular_routes: List[RouteCount]
