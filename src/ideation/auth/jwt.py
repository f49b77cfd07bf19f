"""
HS256 JWT token management.

Tokens are issued by the credential layer and carry the actor identity the
workflow needs: ``sub`` (user id), ``role`` and ``email``, plus a ``jti`` so a
single token can be revoked on logout.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from ideation.config import get_settings
from ideation.db.enums import UserRole


def create_access_token(
    user_id: int,
    role: UserRole,
    email: str,
    *,
    expires_minutes: int | None = None,
    token_id: str | None = None,
) -> str:
    """
    Create a signed access token.

    Args:
        user_id: The user's database ID.
        role: USER or ADMIN.
        email: The user's email address.
        expires_minutes: Lifetime override (defaults to the configured value).
        token_id: JTI override; a random UUID is used otherwise.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    lifetime = settings.jwt_access_token_expire_minutes if expires_minutes is None else expires_minutes
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "role": UserRole(role).value,
        "email": email,
        "jti": token_id or uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(minutes=lifetime),
        "iss": settings.jwt_issuer,
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or wrong type.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp", "jti"]},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != expected_type:
        msg = f"Expected token type '{expected_type}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)

    return payload
