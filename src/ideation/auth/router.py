"""Auth endpoints owned by the API. Login and registration live in the credential service."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Response

from ideation.auth.blacklist import TokenBlacklist, get_token_blacklist
from ideation.auth.dependencies import get_token_payload
from ideation.common.envelope import Envelope
from ideation.config import get_settings

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])
logger = structlog.get_logger()


@router.post("/logout", response_model=Envelope[None])
async def logout(
    response: Response,
    payload: dict[str, Any] = Depends(get_token_payload),
    blacklist: TokenBlacklist = Depends(get_token_blacklist),
) -> Envelope[None]:
    """Revoke the presented token and clear the session cookie."""
    await blacklist.revoke(payload["jti"], int(payload["exp"]))
    response.delete_cookie(get_settings().auth_cookie_name)
    logger.info("user_logged_out", user_id=payload["sub"])
    return Envelope[None](message="Logged out successfully")
