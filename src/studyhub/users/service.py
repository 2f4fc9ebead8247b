"""User profile business logic."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import or_, select

from studyhub.db.models import GroupMember, StudyGroup, User
from studyhub.exceptions import InvalidInput, NotFound

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

MIN_SEARCH_LENGTH = 2


async def get_profile(db: AsyncSession, user_id: int) -> tuple[User, list[StudyGroup]]:
    """
    Get a user and the active groups they belong to.

    Raises:
        NotFound: If the user does not exist.
    """
    user = await db.get(User, user_id)
    if user is None:
        msg = "User not found"
        raise NotFound(msg)

    result = await db.execute(
        select(StudyGroup)
        .join(GroupMember, GroupMember.group_id == StudyGroup.id)
        .where(GroupMember.user_id == user_id)
        .where(GroupMember.is_active.is_(True))
        .where(StudyGroup.is_active.is_(True))
        .order_by(StudyGroup.name)
    )
    return user, list(result.scalars().all())


async def update_profile(
    db: AsyncSession,
    user: User,
    first_name: str | None = None,
    last_name: str | None = None,
    bio: str | None = None,
    avatar_url: str | None = None,
    study_preferences: dict[str, Any] | None = None,
) -> User:
    """Update the given profile fields; None leaves a field untouched."""
    if first_name is not None:
        user.first_name = first_name
    if last_name is not None:
        user.last_name = last_name
    if bio is not None:
        user.bio = bio
    if avatar_url is not None:
        user.avatar_url = avatar_url
    if study_preferences is not None:
        merged = dict(user.study_preferences or {})
        merged.update(study_preferences)
        user.study_preferences = merged

    await db.flush()
    logger.info("profile_updated", user_id=user.id)
    return user


async def search_users(db: AsyncSession, query: str | None, limit: int) -> list[User]:
    """
    Case-insensitive substring search on username, first and last name.

    Raises:
        InvalidInput: If the query is shorter than two non-blank characters.
    """
    q = (query or "").strip()
    if len(q) < MIN_SEARCH_LENGTH:
        msg = "Search query must be at least 2 characters"
        raise InvalidInput(msg)

    pattern = f"%{q}%"
    result = await db.execute(
        select(User)
        .where(
            or_(
                User.username.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
            )
        )
        .order_by(User.username)
        .limit(limit)
    )
    return list(result.scalars().all())
