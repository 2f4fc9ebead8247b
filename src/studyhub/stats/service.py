"""Study-time recording and stats lookups backed by the database."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from studyhub.db.models import GroupMember, StudyGroup, User, UserStudyStats
from studyhub.exceptions import ConcurrentUpdate, NotFound, StorageError
from studyhub.stats.engine import StudyStats, record_study_time, validate_duration

if TYPE_CHECKING:
    import redis.asyncio as aioredis
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

ACHIEVEMENTS_CHANNEL = "pubsub:achievements"


def to_engine_stats(row: UserStudyStats | None) -> StudyStats:
    """Convert a stats row (or its absence) to the engine's value type."""
    if row is None:
        return StudyStats()
    return StudyStats(
        total_study_time=row.total_study_time or 0,
        sessions_completed=row.sessions_completed or 0,
        streak=row.streak or 0,
        achievements=tuple(dict.fromkeys(row.achievements or [])),
        last_study_date=row.last_study_date,
    )


async def get_user(db: AsyncSession, user_id: int) -> User:
    """Fetch a user or raise NotFound."""
    user = await db.get(User, user_id)
    if user is None:
        msg = "User not found"
        raise NotFound(msg)
    return user


async def get_study_stats(db: AsyncSession, user_id: int, *, for_update: bool = False) -> UserStudyStats | None:
    """Load the stats row, optionally locking it for the rest of the transaction."""
    query = select(UserStudyStats).where(UserStudyStats.user_id == user_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_or_create_study_stats(db: AsyncSession, user_id: int) -> UserStudyStats:
    """Locked stats row for the user, inserting a zeroed one if missing."""
    row = await get_study_stats(db, user_id, for_update=True)
    if row is None:
        row = UserStudyStats(
            user_id=user_id,
            total_study_time=0,
            sessions_completed=0,
            streak=0,
            achievements=[],
            updated_at=datetime.now(timezone.utc),
        )
        db.add(row)
        await db.flush()
    return row


def apply_stats(row: UserStudyStats, stats: StudyStats, now: datetime) -> None:
    """Copy engine output onto the ORM row."""
    row.total_study_time = stats.total_study_time
    row.sessions_completed = stats.sessions_completed
    row.streak = stats.streak
    # New list object so the JSON column registers the change.
    row.achievements = list(stats.achievements)
    row.last_study_date = stats.last_study_date
    row.updated_at = now


async def apply_study_time(
    db: AsyncSession,
    user_id: int,
    duration: int,
    today: date,
) -> tuple[StudyStats, list[str]]:
    """Record study time for one user inside the caller's transaction (no commit)."""
    row = await get_or_create_study_stats(db, user_id)
    updated, new_achievements = record_study_time(to_engine_stats(row), duration, today)
    apply_stats(row, updated, datetime.now(timezone.utc))
    await db.flush()
    return updated, new_achievements


async def record_study_time_for_user(
    db: AsyncSession,
    redis: aioredis.Redis | None,
    user_id: int,
    duration: object,
    today: date | None = None,
) -> tuple[StudyStats, list[str]]:
    """Validate, apply and commit a completed study session for ``user_id``.

    Concurrent calls for the same user are serialized by the row lock on
    PostgreSQL; the version column turns any remaining lost update into
    ConcurrentUpdate.

    Raises:
        InvalidInput: duration missing, non-integer or < 1 (nothing written).
        NotFound: user does not exist (nothing written).
        ConcurrentUpdate: the stats row changed underneath this request.
        StorageError: any other database failure.
    """
    minutes = validate_duration(duration)
    if today is None:
        today = datetime.now(timezone.utc).date()

    try:
        await get_user(db, user_id)
        updated, new_achievements = await apply_study_time(db, user_id, minutes, today)
        await db.commit()
    except (StaleDataError, IntegrityError) as e:
        await db.rollback()
        logger.warning("study_time_conflict", user_id=user_id, error=str(e))
        raise ConcurrentUpdate from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("study_time_storage_error", user_id=user_id, error=str(e))
        raise StorageError from e

    logger.info(
        "study_time_recorded",
        user_id=user_id,
        duration=minutes,
        total=updated.total_study_time,
        streak=updated.streak,
        new_achievements=new_achievements,
    )
    await publish_achievements(redis, user_id, new_achievements)
    return updated, new_achievements


async def publish_achievements(
    redis: aioredis.Redis | None,
    user_id: int,
    achievements: list[str],
) -> None:
    """Announce new achievements to the real-time layer. Best effort."""
    if redis is None or not achievements:
        return
    for slug in achievements:
        try:
            await redis.publish(
                ACHIEVEMENTS_CHANNEL,
                json.dumps({
                    "user_id": user_id,
                    "event": "achievement_unlocked",
                    "achievement": slug,
                }),
            )
        except Exception:
            logger.warning("achievement_publish_failed", user_id=user_id, achievement=slug, exc_info=True)


async def get_user_stats(db: AsyncSession, user_id: int) -> dict[str, Any]:
    """Stats fields plus group counts and join date for the stats endpoint."""
    try:
        user = await get_user(db, user_id)
        row = await get_study_stats(db, user_id)

        total_groups = await db.scalar(
            select(func.count(GroupMember.id))
            .join(StudyGroup, GroupMember.group_id == StudyGroup.id)
            .where(GroupMember.user_id == user_id)
            .where(GroupMember.is_active.is_(True))
            .where(StudyGroup.is_active.is_(True))
        )
        owned_groups = await db.scalar(
            select(func.count(StudyGroup.id))
            .where(StudyGroup.owner_id == user_id)
            .where(StudyGroup.is_active.is_(True))
        )
    except SQLAlchemyError as e:
        logger.error("user_stats_storage_error", user_id=user_id, error=str(e))
        raise StorageError from e

    return {
        **to_engine_stats(row).as_dict(),
        "total_groups": total_groups or 0,
        "owned_groups": owned_groups or 0,
        "join_date": user.created_at,
    }
