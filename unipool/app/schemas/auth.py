"""
Authentication Pydantic schemas.

Defines request and response schemas for identity endpoints.
"""

import re
from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional
from unipool.app.core.config import settings
from unipool.app.core.security import validate_password_strength
from unipool.app.models.enums import UserRole, UserStatus, University


class VehicleInfo(BaseModel):
    make: Optional[str] = Field(None, max_length=50)
    model: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=30)
    license_plate: Optional[str] = Field(None, max_length=20)
    year: Optional[int] = Field(None, ge=1950, le=2100)


class UserRegister(BaseModel):
    """
    Schema for user registration.

    Used by POST /auth/register endpoint.
    Default role is passenger; admin accounts are seeded, never registered.
    """
    name: str = Field(..., min_length=1, max_length=100, description="Full name")
    email: EmailStr = Field(..., description="Institutional email address")
    password: str = Field(..., description="Password (8+ chars, upper, lower and digit)")
    phone: str = Field(..., description="Phone number, e.g. +923001234567")
    university: University
    role: Optional[UserRole] = Field(default=UserRole.PASSENGER, description="User role (defaults to passenger)")
    department: Optional[str] = Field(None, max_length=100)
    student_id: Optional[str] = Field(None, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)
    home_area: Optional[str] = Field(None, max_length=100)
    vehicle: Optional[VehicleInfo] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def institutional_email(cls, v: str) -> str:
        v = v.lower()
        if not v.endswith(settings.institutional_email_suffix):
            raise ValueError(f"Must be a valid {settings.institutional_email_suffix} email")
        return v

    @field_validator("phone")
    @classmethod
    def national_phone(cls, v: str) -> str:
        if not re.match(settings.phone_pattern, v):
            raise ValueError("Must be a valid Pakistani phone number (+92...)")
        return v

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        return validate_password_strength(v)


class UserLogin(BaseModel):
    """
    Schema for user login.

    Used by POST /auth/login endpoint.
    """
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, description="Password")

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class RatingSummary(BaseModel):
    average: float
    count: int


class UserSummary(BaseModel):
    """Public view of a user embedded in rides, bookings and reviews."""
    id: int
    name: str
    university: University
    driver_rating: RatingSummary
    passenger_rating: RatingSummary

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    """
    Schema for user profile response.

    Used by GET /auth/me and the admin user listing. Never includes the password hash.
    """
    id: int
    name: str
    email: str
    phone: str
    role: UserRole
    status: UserStatus
    university: University
    department: Optional[str] = None
    student_id: Optional[str] = None
    bio: Optional[str] = None
    home_area: Optional[str] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_color: Optional[str] = None
    vehicle_license_plate: Optional[str] = None
    vehicle_year: Optional[int] = None
    email_verified: bool
    phone_verified: bool
    driver_rating: RatingSummary
    passenger_rating: RatingSummary
    rides_as_driver: int
    rides_as_passenger: int
    total_earnings: float
    last_login: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuthPayload(BaseModel):
    """
    Returned by successful register/login operations.

    The same token is also set as the session cookie.
    """
    user: UserResponse
    token: str
    token_type: str = "bearer"
