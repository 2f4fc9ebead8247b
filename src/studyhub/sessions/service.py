"""Session completion: closes a session and credits each participant's study time."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from studyhub.db.models import SessionParticipant, StudySession
from studyhub.exceptions import ConcurrentUpdate, Forbidden, InvalidInput, NotFound, StorageError
from studyhub.stats.service import apply_study_time, publish_achievements

if TYPE_CHECKING:
    import redis.asyncio as aioredis
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

COMPLETABLE_STATUSES = ("scheduled", "active")


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def participation_minutes(
    participant: SessionParticipant,
    session: StudySession,
    ended_at: datetime,
) -> int:
    """Whole minutes from when the participant joined (or the session started) to ``ended_at``, at least 1."""
    started = participant.joined_at or session.actual_start or session.scheduled_start
    seconds = (_as_utc(ended_at) - _as_utc(started)).total_seconds()
    return max(1, math.floor(seconds / 60))


async def complete_session(
    db: AsyncSession,
    redis: aioredis.Redis | None,
    session_id: int,
    user_id: int,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Mark a session completed and credit every participant's study stats.

    Participants who already have a duration keep it; the rest get the time
    between joining and ``now``. All stat updates commit together with the
    status change.

    Raises:
        NotFound: Session does not exist.
        Forbidden: Caller is not the host.
        InvalidInput: Session is already completed or cancelled.
        ConcurrentUpdate: A participant's stats changed underneath this request.
        StorageError: Any other database failure.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    try:
        result = await db.execute(
            select(StudySession)
            .options(selectinload(StudySession.participants))
            .where(StudySession.id == session_id)
            .with_for_update()
        )
        session = result.scalar_one_or_none()
        if session is None:
            msg = "Session not found"
            raise NotFound(msg)
        if session.host_id != user_id:
            msg = "Only the host can complete a session"
            raise Forbidden(msg)
        if session.status not in COMPLETABLE_STATUSES:
            msg = f"Session is already {session.status}"
            raise InvalidInput(msg)

        session.status = "completed"
        session.actual_end = now
        if session.actual_start is None:
            session.actual_start = session.scheduled_start

        unlocked: dict[int, list[str]] = {}
        for participant in session.participants:
            if not participant.duration:
                participant.duration = participation_minutes(participant, session, now)
            _, new_achievements = await apply_study_time(
                db, participant.user_id, participant.duration, now.date()
            )
            unlocked[participant.user_id] = new_achievements

        await db.commit()
    except (StaleDataError, IntegrityError) as e:
        await db.rollback()
        logger.warning("session_complete_conflict", session_id=session_id, error=str(e))
        raise ConcurrentUpdate from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("session_complete_storage_error", session_id=session_id, error=str(e))
        raise StorageError from e

    logger.info(
        "session_completed",
        session_id=session_id,
        participants=len(session.participants),
    )
    for participant_id, achievements in unlocked.items():
        await publish_achievements(redis, participant_id, achievements)

    return {
        "id": session.id,
        "status": session.status,
        "actual_end": session.actual_end,
        "participants": [
            {
                "user_id": p.user_id,
                "duration": p.duration,
                "new_achievements": unlocked.get(p.user_id, []),
            }
            for p in session.participants
        ],
    }
