"""
JWT access token verification.

Tokens are issued by the external auth service and signed with a shared
secret; ``sub`` carries the user id. ``create_access_token`` mints the same
shape for operators and tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from studyhub.config import get_settings


def create_access_token(user_id: int, username: str | None = None) -> str:
    """
    Create a short-lived access token.

    Args:
        user_id: The user's database ID.
        username: Optional username claim.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_access_token_expire_minutes),
        "iss": settings.jwt_issuer,
        "type": "access",
    }
    if username is not None:
        payload["username"] = username
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Decode and verify a JWT.

    Raises:
        jwt.InvalidTokenError: Signature, expiry, issuer or type check failed.
    """
    settings = get_settings()
    payload: dict[str, Any] = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        issuer=settings.jwt_issuer,
        options={"require": ["sub", "exp", "iss"]},
    )
    if payload.get("type") != expected_type:
        msg = f"Expected {expected_type} token"
        raise jwt.InvalidTokenError(msg)
    return payload
