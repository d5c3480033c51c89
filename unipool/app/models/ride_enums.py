"""
Ride-related enumerations.
"""

import enum


class RideStatus(str, enum.Enum):
    """Ride status enumeration."""
    SCHEDULED = "scheduled"  # Open for booking requests
    IN_PROGRESS = "in-progress"  # Underway; still editable by the driver
    COMPLETED = "completed"  # Terminal, unlocks reviews
    CANCELLED = "cancelled"  # Terminal


# Statuses a driver may still edit
EDITABLE_RIDE_STATUSES = (RideStatus.SCHEDULED, RideStatus.IN_PROGRESS)
TERMINAL_RIDE_STATUSES = (RideStatus.COMPLETED, RideStatus.CANCELLED)
