"""
Identity enumerations.

Defines the roles, account states and universities of the carpooling platform.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        PASSENGER: Can search and book rides (default role)
        DRIVER: Can post rides
        BOTH: Driver and passenger capabilities
        ADMIN: Moderation access; created by seeding only
    """
    PASSENGER = "passenger"
    DRIVER = "driver"
    BOTH = "both"
    ADMIN = "admin"


class UserStatus(str, enum.Enum):
    """Account status; only ACTIVE accounts may act."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    BANNED = "banned"


class University(str, enum.Enum):
    LUMS = "LUMS"
    NUST = "NUST"
    FAST = "FAST"
    UET = "UET"
    GIKI = "GIKI"
    IBA = "IBA"
    OTHER = "Other"
