"""
Analytics API Endpoints.

Platform dashboard for admins. Read-only, recomputed on every call.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from unipool.app.db.session import get_db
from unipool.app.core.guards import require_admin
from unipool.app.models.user import User
from unipool.app.schemas.analytics import PlatformAnalytics
from unipool.app.schemas.common import Envelope
from unipool.app.services.analytics import AnalyticsService

router = APIRouter(prefix="/admin/analytics", tags=["Admin - Analytics"])


@router.get("", response_model=Envelope[PlatformAnalytics])
async def get_platform_analytics(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Counts, 7-day activity, top universities and popular routes."""
    return Envelope(data=await AnalyticsService.get_platform_analytics(db))
