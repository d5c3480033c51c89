"""
Database seeding script for initial users.

Admin accounts cannot be registered through the API, so the first ADMIN is
created here, together with a demo driver and passenger.
Run this script after database is set up but before first use.
"""

import asyncio

from sqlalchemy import select

from unipool.app.core.config import settings
from unipool.app.core.security import get_password_hash
from unipool.app.db.session import AsyncSessionLocal, engine, Base
from unipool.app.models.enums import UserRole, UserStatus, University
from unipool.app.models.user import User

# Register the remaining tables for create_all
from unipool.app.models import ride, booking, review, report, audit_log, dlq, notification  # noqa: F401


SEED_USERS = [
    {
        "name": "Platform Admin",
        "email": settings.seed_admin_email,
        "phone": "+920000000000",
        "password": settings.seed_admin_password,
        "role": UserRole.ADMIN,
        "university": University.OTHER,
    },
    {
        "name": "Demo Driver",
        "email": "driver@lums.edu.pk",
        "phone": "+923000000001",
        "password": "Driver1234",
        "role": UserRole.DRIVER,
        "university": University.LUMS,
    },
    {
        "name": "Demo Passenger",
        "email": "passenger@lums.edu.pk",
        "phone": "+923000000002",
        "password": "Passenger1234",
        "role": UserRole.PASSENGER,
        "university": University.LUMS,
    },
]


async def seed_users(session_factory=AsyncSessionLocal) -> int:
    """
    Seed initial users.

    Skipped entirely when an ADMIN already exists.

    Returns:
        Number of users created
    """
    async with session_factory() as db:
        print("🌱 Starting user seeding...")

        result = await db.execute(select(User.id).where(User.role == UserRole.ADMIN).limit(1))
        if result.first():
            print("ℹ️  ADMIN user already exists, skipping seeding")
            return 0

        for seed in SEED_USERS:
            db.add(User(
                name=seed["name"],
                email=seed["email"],
                phone=seed["phone"],
                hashed_password=get_password_hash(seed["password"]),
                role=seed["role"],
                university=seed["university"],
                status=UserStatus.ACTIVE,
                email_verified=True,
                phone_verified=True,
            ))
            print(f"✅ Created {seed['role'].value} user ({seed['email']})")

        await db.commit()

        print("\n🎉 User seeding completed successfully!")
        print("Note: students register via POST /v1/auth/register")
        return len(SEED_USERS)


async def main():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_users()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
