"""
Analytics Service.

Platform-wide aggregates for the admin dashboard.
Read-only and recomputed on every call.
"""

from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc

from unipool.app.models.booking import Booking
from unipool.app.models.booking_enums import BookingStatus
from unipool.app.models.enums import UserRole, UserStatus
from unipool.app.models.report import Report, ReportStatus
from unipool.app.models.ride import Ride
from unipool.app.models.ride_enums import RideStatus
from unipool.app.models.user import User
from unipool.app.schemas.analytics import (
    PlatformAnalytics, PlatformOverview, RecentActivity, UniversityCount, RouteCount
)

RECENT_WINDOW_DAYS = 7
TOP_UNIVERSITIES = 5
TOP_ROUTES = 10


class AnalyticsService:

    @staticmethod
    async def _count(db: AsyncSession, column, *criteria) -> int:
        query = select(func.count(column))
        if criteria:
            query = query.where(*criteria)
        return (await db.execute(query)).scalar() or 0

    @staticmethod
    async def get_overview(db: AsyncSession) -> PlatformOverview:
        count = AnalyticsService._count
        return PlatformOverview(
            total_users=await count(db, User.id, User.status == UserStatus.ACTIVE),
            total_drivers=await count(
                db, User.id,
                User.status == UserStatus.ACTIVE,
                User.role.in_([UserRole.DRIVER, UserRole.BOTH])
            ),
            total_rides=await count(db, Ride.id),
            completed_rides=await count(db, Ride.id, Ride.status == RideStatus.COMPLETED),
            active_rides=await count(db, Ride.id, Ride.status == RideStatus.SCHEDULED),
            total_bookings=await count(db, Booking.id),
            confirmed_bookings=await count(db, Booking.id, Booking.status == BookingStatus.CONFIRMED),
            pending_reports=await count(db, Report.id, Report.status == ReportStatus.PENDING),
        )

    @staticmethod
    async def get_recent_activity(db: AsyncSession) -> RecentActivity:
        since = datetime.utcnow() - timedelta(days=RECENT_WINDOW_DAYS)
        count = AnalyticsService._count
        return RecentActivity(
            new_users_last_week=await count(db, User.id, User.created_at >= since),
            rides_last_week=await count(db, Ride.id, Ride.created_at >= since),
        )

    @staticmethod
    async def get_top_universities(db: AsyncSession, limit: int = TOP_UNIVERSITIES) -> list[UniversityCount]:
        """Universities with the most active users."""
        user_count = func.count(User.id).label("user_count")
        query = (
            select(User.university, user_count)
            .where(User.status == UserStatus.ACTIVE)
            .group_by(User.university)
            .order_by(desc(user_count), User.university)
            .limit(limit)
        )
        rows = (await db.execute(query)).all()
        return [UniversityCount(university=university.value, count=n) for university, n in rows]

    @staticmethod
    async def get_popular_routes(db: AsyncSession, limit: int = TOP_ROUTES) -> list[RouteCount]:
        """Most posted origin/destination pairs."""
        ride_count = func.count(Ride.id).label("ride_count")
        query = (
            select(Ride.origin, Ride.destination, ride_count)
            .group_by(Ride.origin, Ride.destination)
            .order_by(desc(ride_count), Ride.origin, Ride.destination)
            .limit(limit)
        )
        rows = (await db.execute(query)).all()
        return [RouteCount(origin=o, destination=d, count=n) for o, d, n in rows]

    @staticmethod
    async def get_platform_analytics(db: AsyncSession) -> PlatformAnalytics:
        return PlatformAnalytics(
            overview=await AnalyticsService.get_overview(db),
            recent_activity=await AnalyticsService.get_recent_activity(db),
            top_universities=await AnalyticsService.get_top_universities(db),
            popular_routes=await AnalyticsService.get_popular_routes(db),
        )
