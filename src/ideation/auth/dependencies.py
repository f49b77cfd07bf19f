"""FastAPI authentication dependencies."""

from __future__ import annotations

from typing import Any

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ideation.auth.actor import Actor
from ideation.auth.blacklist import TokenBlacklist, get_token_blacklist
from ideation.auth.jwt import verify_token
from ideation.config import get_settings
from ideation.database import get_session
from ideation.db.models import User
from ideation.errors import AuthenticationError, ForbiddenError

_bearer = HTTPBearer(auto_error=False)


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _raw_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    """Bearer header first, then the session cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(get_settings().auth_cookie_name) or None


async def _verify(request: Request, token: str, blacklist: TokenBlacklist) -> dict[str, Any]:
    client_ip = _client_ip(request)
    if await blacklist.is_suspicious(client_ip):
        raise ForbiddenError("Too many invalid tokens from this client. Try again later.")

    try:
        payload = verify_token(token, expected_type="access")
    except jwt.InvalidTokenError as e:
        await blacklist.record_invalid_token(client_ip)
        raise AuthenticationError(str(e) or "Invalid token") from e

    if await blacklist.is_revoked(payload["jti"]):
        raise AuthenticationError("Token has been revoked")
    return payload


async def get_token_payload(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    blacklist: TokenBlacklist = Depends(get_token_blacklist),
) -> dict[str, Any]:
    """Verified claims of the presented token. Raises 401 when absent or invalid."""
    token = _raw_token(request, credentials)
    if token is None:
        raise AuthenticationError("Access denied. No token provided")
    return await _verify(request, token, blacklist)


async def _load_actor(db: AsyncSession, payload: dict[str, Any]) -> Actor:
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as e:
        raise AuthenticationError("Invalid token subject") from e

    user = await db.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return Actor.from_user(user)


async def get_current_actor(
    payload: dict[str, Any] = Depends(get_token_payload),
    db: AsyncSession = Depends(get_session),
) -> Actor:
    """
    Resolve the authenticated actor.

    The role comes from the user row, not the token, so a demoted admin loses
    admin rights without waiting for the token to expire.
    """
    return await _load_actor(db, payload)


async def get_optional_actor(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    blacklist: TokenBlacklist = Depends(get_token_blacklist),
    db: AsyncSession = Depends(get_session),
) -> Actor | None:
    """Like ``get_current_actor`` but anonymous requests get ``None``."""
    token = _raw_token(request, credentials)
    if token is None:
        return None
    payload = await _verify(request, token, blacklist)
    return await _load_actor(db, payload)
