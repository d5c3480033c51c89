"""
Credential hashing and password policy.

Passwords are hashed with bcrypt through passlib and never stored or logged in plaintext.
"""

import re
from typing import List

from passlib.context import CryptContext
from unipool.app.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)

PASSWORD_MIN_LENGTH = 8


def get_password_hash(password: str) -> str:
    """Hash a plaintext password with a per-hash salt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plaintext password against a stored bcrypt digest."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def password_policy_violations(password: str) -> List[str]:
    """
    Return the password policy rules a candidate password breaks.

    Policy: at least 8 characters with an uppercase letter,
    a lowercase letter and a digit.
    """
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must include an uppercase letter")
    if not re.search(r"[a-z]", password):
        problems.append("Password must include a lowercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must include a digit")
    return problems


def validate_password_strength(password: str) -> str:
    """Raise ValueError when the password breaks the policy; return it unchanged otherwise."""
    problems = password_policy_violations(password)
    if problems:
        raise ValueError("; ".join(problems))
    return password
