"""
Password hashing and access tokens.

Credentials are hashed with passlib's sha256_crypt (salted, portable, no
native build requirements). Access tokens are HS256 JWTs carrying the
account id, email and role.
"""

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Optional

import jwt
from passlib.context import CryptContext

from pizzeria.core.config import get_settings
from pizzeria.core.errors import AuthenticationError

ALGORITHM = "HS256"


@lru_cache()
def get_password_context() -> CryptContext:
    settings = get_settings()
    return CryptContext(
        schemes=["sha256_crypt"],
        deprecated="auto",
        sha256_crypt__default_rounds=settings.password_hash_rounds,
    )


def hash_password(password: str) -> str:
    """Hash a plain password for storage."""
    return get_password_context().hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain password against its stored hash."""
    if not hashed_password:
        return False
    return get_password_context().verify(plain_password, hashed_password)


def create_access_token(
    account_id: int,
    email: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Issue a signed access token.

    Args:
        account_id: Identity stored in the ``sub`` claim
        email: Account email
        role: Account role value
        expires_delta: Token lifetime (defaults to JWT_EXPIRE_MINUTES)

    Returns:
        Encoded JWT string
    """
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    )
    payload = {
        "sub": str(account_id),
        "email": email,
        "role": role,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token.

    Raises:
        AuthenticationError: Token expired, malformed or missing claims
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")

    if not payload.get("sub"):
        raise AuthenticationError("Invalid token")
    return payload
