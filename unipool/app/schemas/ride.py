"""
Ride Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime, date as dt_date
from typing import Optional, List
from unipool.app.models.ride_enums import RideStatus
from unipool.app.schemas.auth import UserSummary

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class RidePreferences(BaseModel):
    non_smoking: bool = True
    ac_available: bool = False
    music_allowed: bool = True
    pets_allowed: bool = False


class RideCreate(BaseModel):
    """
    Schema for posting a ride.

    `date` and `time` are combined in the configured timezone.
    """
    origin: str = Field(..., min_length=1, max_length=200)
    destination: str = Field(..., min_length=1, max_length=200)
    date: dt_date = Field(..., description="Departure date (YYYY-MM-DD)")
    time: str = Field(..., pattern=TIME_PATTERN, description="Departure time (HH:MM, 24h)")
    available_seats: int = Field(..., ge=1, le=4)
    cost_per_passenger: float = Field(..., ge=0)
    preferences: RidePreferences = Field(default_factory=RidePreferences)
    notes: Optional[str] = Field(None, max_length=500)


class RideUpdate(BaseModel):
    """
    Fields a driver may change after posting.

    Route and seats are fixed; unknown keys are ignored.
    """
    time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    cost_per_passenger: Optional[float] = Field(None, ge=0)
    preferences: Optional[RidePreferences] = None
    notes: Optional[str] = Field(None, max_length=500)


class RideResponse(BaseModel):
    id: int
    driver_id: int
    origin: str
    destination: str
    departure_at: datetime
    departure_time: str
    total_seats: int
    available_seats: int
    cost_per_passenger: float
    preferences: RidePreferences
    notes: Optional[str] = None
    status: RideStatus
    created_at: datetime
    updated_at: datetime
    driver: Optional[UserSummary] = None
    passengers: List[UserSummary] = []

    class Config:
        from_attributes = True


class RideSummary(BaseModel):
    """Compact ride view embedded in bookings."""
    id: int
    driver_id: int
    origin: str
    destination: str
    departure_at: datetime
    status: RideStatus

    class Config:
        from_attributes = True
