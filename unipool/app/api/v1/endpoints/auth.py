"""
Authentication API endpoints.

Provides register, login, logout and profile endpoints. The session token is
returned in the body and also set as an HTTP-only cookie.
"""

import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from unipool.app.db.session import get_db
from unipool.app.models.user import User
from unipool.app.models.enums import UserRole, UserStatus
from unipool.app.schemas.auth import UserRegister, UserLogin, UserResponse, AuthPayload
from unipool.app.schemas.common import Envelope
from unipool.app.core.config import settings
from unipool.app.core.exceptions import AuthenticationError, ConflictError
from unipool.app.core.security import get_password_hash, verify_password
from unipool.app.core.jwt import create_session_token, decode_access_token
from unipool.app.core.dependencies import get_current_user, get_session_token
from unipool.app.core.token_revocation import revoke_token
from unipool.app.services.audit import log_auth_event, AuditAction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
    )


def _client_ip(request: Request):
    return request.client.host if request.client else None


@router.post("/register", response_model=Envelope[AuthPayload], status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user.

    Rules:
    - ADMIN role cannot be created via API.
    - Email must be institutional; phone must match the national format.
    - Email and phone are unique.
    """
    # 1. Block ADMIN registration
    if user_data.role == UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin users cannot be registered via API"
        )

    # 2. Check if email or phone already exists
    result = await db.execute(
        select(User).where(
            or_(User.email == user_data.email, User.phone == user_data.phone)
        )
    )
    existing_user = result.scalars().first()

    if existing_user:
        if existing_user.email == user_data.email:
            raise ConflictError("Email already registered")
        raise ConflictError("Phone number already registered")

    vehicle = user_data.vehicle
    new_user = User(
        name=user_data.name,
        email=user_data.email,
        phone=user_data.phone,
        hashed_password=get_password_hash(user_data.password),
        university=user_data.university,
        role=user_data.role or UserRole.PASSENGER,
        status=UserStatus.ACTIVE,
        department=user_data.department,
        student_id=user_data.student_id,
        bio=user_data.bio,
        home_area=user_data.home_area,
        vehicle_make=vehicle.make if vehicle else None,
        vehicle_model=vehicle.model if vehicle else None,
        vehicle_color=vehicle.color if vehicle else None,
        vehicle_license_plate=vehicle.license_plate if vehicle else None,
        vehicle_year=vehicle.year if vehicle else None,
    )

    db.add(new_user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Email or phone number already registered")
    await db.refresh(new_user)

    token = create_session_token(new_user)
    payload = AuthPayload(user=UserResponse.model_validate(new_user), token=token)

    await log_auth_event(
        db=db,
        action=AuditAction.USER_REGISTERED,
        user_id=new_user.id,
        email=new_user.email,
        ip_address=_client_ip(request)
    )

    _set_session_cookie(response, token)
    return Envelope(message="Registration successful", data=payload)


@router.post("/login", response_model=Envelope[AuthPayload])
async def login(
    credentials: UserLogin,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """
    Login user and return a session token.

    Suspended and banned accounts are refused with 403 even with the right password.
    Logs successful and failed login attempts for security monitoring.
    """
    result = await db.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.warning("Login failed", extra={"user_id": user.id if user else None})
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id if user else None,
            email=credentials.email,
            ip_address=_client_ip(request),
            metadata={"reason": "Invalid password" if user else "User not found"}
        )
        raise AuthenticationError("Invalid credentials")

    # Check account status
    if user.status != UserStatus.ACTIVE:
        account_status = user.status.value
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id,
            email=user.email,
            ip_address=_client_ip(request),
            metadata={"reason": f"Account is {account_status}"}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Your account has been {account_status}"
        )

    user.last_login = datetime.utcnow()
    token = create_session_token(user)

    # Commits last_login together with the audit entry
    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        email=user.email,
        ip_address=_client_ip(request)
    )

    _set_session_cookie(response, token)
    return Envelope(
        message="Login successful",
        data=AuthPayload(user=UserResponse.model_validate(user), token=token)
    )


@router.get("/me", response_model=Envelope[UserResponse])
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get the current user's profile."""
    return Envelope(data=UserResponse.model_validate(current_user))


@router.post("/logout", response_model=Envelope[None])
async def logout(
    response: Response,
    token: str = Depends(get_session_token),
    current_user: User = Depends(get_current_user)
):
    """
    Revoke the presented session token and clear the cookie.
    """
    payload = decode_access_token(token) or {}
    await revoke_token(token, current_user.id, payload.get("exp"))
    response.delete_cookie(settings.auth_cookie_name)
    return Envelope(message="Logged out successfully")
