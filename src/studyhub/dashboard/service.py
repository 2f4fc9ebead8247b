"""Dashboard aggregation.

Combines a user's groups, upcoming sessions and completed-session minutes
into a single payload. Recomputed on every request, never cached. Any failed
query aborts the whole build.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import aliased, selectinload

from studyhub.config import get_settings
from studyhub.dashboard.aggregator import (
    build_snapshot,
    day_window,
    format_group,
    format_session,
    sum_participation,
    week_window,
)
from studyhub.db.models import GroupMember, SessionParticipant, StudyGroup, StudySession
from studyhub.exceptions import StorageError
from studyhub.stats.service import get_study_stats, get_user, to_engine_stats

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

UPCOMING_STATUSES = ("scheduled", "active")


def _participated_in(user_id: int):  # noqa: ANN202
    """Subquery of session ids the user participates in."""
    return select(SessionParticipant.session_id).where(SessionParticipant.user_id == user_id)


async def get_recent_groups(db: AsyncSession, user_id: int, limit: int) -> list[dict[str, Any]]:
    """Active groups the user belongs to, most recently updated first."""
    counted = aliased(GroupMember)
    member_count = (
        select(func.count(counted.id))
        .where(counted.group_id == StudyGroup.id)
        .where(counted.is_active.is_(True))
        .correlate(StudyGroup)
        .scalar_subquery()
    )
    my_groups = (
        select(GroupMember.group_id)
        .where(GroupMember.user_id == user_id)
        .where(GroupMember.is_active.is_(True))
    )
    result = await db.execute(
        select(StudyGroup, member_count)
        .where(StudyGroup.id.in_(my_groups))
        .where(StudyGroup.is_active.is_(True))
        .order_by(StudyGroup.updated_at.desc().nulls_last(), StudyGroup.id.desc())
        .limit(limit)
    )
    return [format_group(group, count) for group, count in result.all()]


async def get_upcoming_sessions(
    db: AsyncSession,
    user_id: int,
    now: datetime,
    limit: int,
) -> list[dict[str, Any]]:
    """Scheduled or active sessions the user hosts or joined, soonest first."""
    result = await db.execute(
        select(StudySession)
        .options(selectinload(StudySession.group), selectinload(StudySession.host))
        .where(
            or_(
                StudySession.host_id == user_id,
                StudySession.id.in_(_participated_in(user_id)),
            )
        )
        .where(StudySession.scheduled_start >= now)
        .where(StudySession.status.in_(UPCOMING_STATUSES))
        .order_by(StudySession.scheduled_start.asc(), StudySession.id.asc())
        .limit(limit)
    )
    return [
        format_session(s, s.group.name if s.group else None, s.host)
        for s in result.scalars().all()
    ]


async def get_completed_minutes(
    db: AsyncSession,
    user_id: int,
    start: datetime,
    end: datetime,
) -> int:
    """Minutes the user logged in sessions completed within [start, end)."""
    result = await db.execute(
        select(StudySession)
        .options(selectinload(StudySession.participants))
        .where(StudySession.id.in_(_participated_in(user_id)))
        .where(StudySession.status == "completed")
        .where(StudySession.actual_end >= start)
        .where(StudySession.actual_end < end)
    )
    return sum_participation(result.scalars().all(), user_id)


async def build_dashboard(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
    weekly_goal: int | None = None,
) -> dict[str, Any]:
    """Build the dashboard snapshot for ``user_id``.

    Raises:
        NotFound: user does not exist.
        StorageError: any query failed; no partial snapshot is returned.
    """
    settings = get_settings()
    if now is None:
        now = datetime.now(timezone.utc)
    if weekly_goal is None:
        weekly_goal = settings.weekly_goal_minutes

    try:
        await get_user(db, user_id)
        stats_row = await get_study_stats(db, user_id)
        recent_groups = await get_recent_groups(db, user_id, settings.dashboard_group_limit)
        upcoming_sessions = await get_upcoming_sessions(
            db, user_id, now, settings.dashboard_session_limit
        )
        today_progress = await get_completed_minutes(db, user_id, *day_window(now))
        week_progress = await get_completed_minutes(db, user_id, *week_window(now))
    except SQLAlchemyError as e:
        logger.error("dashboard_storage_error", user_id=user_id, error=str(e))
        raise StorageError from e

    return build_snapshot(
        recent_groups=recent_groups,
        upcoming_sessions=upcoming_sessions,
        stats=to_engine_stats(stats_row),
        today_progress=today_progress,
        week_progress=week_progress,
        weekly_goal=weekly_goal,
    )
