"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from unipool.app.api.v1.endpoints import (
    auth, rides, bookings, reviews,
    admin, analytics, admin_ops, notifications
)

router = APIRouter()

# Identity
router.include_router(auth.router)

# Marketplace
router.include_router(rides.router)
router.include_router(bookings.router)
router.include_router(reviews.router)

# Moderation
router.include_router(admin.router)
router.include_router(analytics.router)
router.include_router(admin_ops.router)

# In-app notifications
router.include_router(notifications.router)
