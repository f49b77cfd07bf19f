"""Profile and public user endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ideation.auth.actor import Actor
from ideation.auth.dependencies import get_current_actor
from ideation.common.envelope import Envelope
from ideation.common.pagination import PageParams, page_params
from ideation.database import get_session
from ideation.users import service
from ideation.users.schemas import (
    ContributionStats,
    ProfileResponse,
    PublicProfileResponse,
    StarLedgerEntryResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Users"])


@router.get("/profile/me", response_model=Envelope[ProfileResponse])
async def get_my_profile(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[ProfileResponse]:
    user = await service.get_user(db, actor.user_id)
    return Envelope(message="Profile retrieved successfully", data=ProfileResponse.model_validate(user))


@router.get("/profile/me/stars", response_model=Envelope[list[StarLedgerEntryResponse]])
async def get_my_star_history(
    params: PageParams = Depends(page_params),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[list[StarLedgerEntryResponse]]:
    """Every star credit and reversal, newest first by default."""
    entries, pagination = await service.list_star_history(db, actor.user_id, params)
    return Envelope(
        message="Star history retrieved successfully",
        data=[StarLedgerEntryResponse.model_validate(e) for e in entries],
        pagination=pagination,
    )


@router.get("/users/{user_id}", response_model=Envelope[PublicProfileResponse])
async def get_public_profile(
    user_id: int,
    db: AsyncSession = Depends(get_session),
) -> Envelope[PublicProfileResponse]:
    """Public profile with contribution counts (no email)."""
    user = await service.get_user(db, user_id)
    stats = await service.get_contribution_stats(db, user_id)
    return Envelope(
        message="User retrieved successfully",
        data=PublicProfileResponse(
            id=user.id,
            name=user.name,
            avatar_url=user.avatar_url,
            stars_balance=user.stars_balance,
            member_since=user.created_at,
            contributions=ContributionStats(**stats),
        ),
    )
