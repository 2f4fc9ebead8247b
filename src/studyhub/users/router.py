"""User router: all /api/v1/users/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.auth.dependencies import get_current_user
from studyhub.config import get_settings
from studyhub.database import get_session
from studyhub.db.models import User
from studyhub.redis_client import get_redis_or_none
from studyhub.stats.schemas import (
    StudyStatsResponse,
    StudyTimeRequest,
    StudyTimeResponse,
    UserStatsResponse,
)
from studyhub.stats.service import get_user_stats, record_study_time_for_user
from studyhub.users.schemas import (
    GroupSummaryResponse,
    ProfileUpdateRequest,
    UserProfileResponse,
    UserResponse,
    UserSearchResult,
)
from studyhub.users.service import get_profile, search_users, update_profile

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserResponse)
async def get_my_profile(
    user: User = Depends(get_current_user),
) -> UserResponse:
    """Get own profile."""
    return UserResponse.model_validate(user)


@router.get("/profile/{user_id}", response_model=UserProfileResponse)
async def get_profile_endpoint(
    user_id: int,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserProfileResponse:
    """Get a user's profile with their groups."""
    profile, groups = await get_profile(db, user_id)
    response = UserProfileResponse.model_validate(profile)
    response.groups = [GroupSummaryResponse.model_validate(g) for g in groups]
    return response


@router.put("/profile", response_model=UserResponse)
async def update_my_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update first/last name, bio, avatar and study preferences."""
    user = await update_profile(
        db,
        user,
        first_name=body.first_name,
        last_name=body.last_name,
        bio=body.bio,
        avatar_url=body.avatar_url,
        study_preferences=body.study_preferences,
    )
    await db.commit()
    return UserResponse.model_validate(user)


@router.get("/search", response_model=list[UserSearchResult])
async def search_users_endpoint(
    q: str | None = Query(None),
    limit: int | None = Query(None, ge=1),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[UserSearchResult]:
    """Search users by username or name."""
    settings = get_settings()
    limit = min(limit or settings.user_search_default_limit, settings.user_search_max_limit)
    users = await search_users(db, q, limit)
    return [UserSearchResult.model_validate(u) for u in users]


# ---------------------------------------------------------------------------
# Study statistics
# ---------------------------------------------------------------------------


@router.get("/stats", response_model=UserStatsResponse)
async def get_stats_endpoint(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserStatsResponse:
    """Study statistics with group counts and join date."""
    return UserStatsResponse.model_validate(await get_user_stats(db, user.id))


@router.post("/study-time", response_model=StudyTimeResponse)
async def record_study_time_endpoint(
    body: StudyTimeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> StudyTimeResponse:
    """Log completed study minutes; updates streak and unlocks achievements."""
    stats, new_achievements = await record_study_time_for_user(
        db, get_redis_or_none(), user.id, body.duration
    )
    return StudyTimeResponse(
        message="Study time updated",
        stats=StudyStatsResponse.model_validate(stats.as_dict()),
        new_achievements=new_achievements,
    )
