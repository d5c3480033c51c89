"""
Booking-related enumerations.
"""

import enum


class BookingStatus(str, enum.Enum):
    """
    Booking status enumeration.

    pending -> confirmed | rejected; pending | confirmed -> cancelled.
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"  # Terminal
    CANCELLED = "cancelled"  # Terminal


# A passenger may hold at most one booking in these states per ride
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    DIGITAL = "digital"
