"""Dashboard read-model assembly.

Everything here works on already-queried rows; ``service.py`` does the I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, time, timedelta
from typing import Any, Protocol

from studyhub.stats.engine import StudyStats

UNKNOWN_GROUP = "Unknown Group"


class Participation(Protocol):
    user_id: int
    duration: int | None


class HasParticipants(Protocol):
    participants: Iterable[Participation]


def find_participation(session: HasParticipants, user_id: int) -> int | None:
    """Duration the user logged in ``session``, or None if they are not a participant."""
    for participant in session.participants:
        if participant.user_id == user_id:
            return participant.duration or 0
    return None


def sum_participation(sessions: Iterable[HasParticipants], user_id: int) -> int:
    """Total minutes the user logged across ``sessions``."""
    return sum(find_participation(s, user_id) or 0 for s in sessions)


def day_window(now: datetime) -> tuple[datetime, datetime]:
    """[midnight today, midnight tomorrow) in ``now``'s timezone."""
    start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    return start, start + timedelta(days=1)


def week_window(now: datetime) -> tuple[datetime, datetime]:
    """Seven-day window starting at midnight of the Sunday of ``now``'s week."""
    today_start, _ = day_window(now)
    start = today_start - timedelta(days=(now.weekday() + 1) % 7)
    return start, start + timedelta(days=7)



def format_host_name(first_name: str | None, last_name: str | None) -> str:
    """Space-joined, trimmed host name; empty when both parts are missing."""
    return f"{first_name or ''} {last_name or ''}".strip()


def format_group(group: Any, member_count: int | None) -> dict[str, Any]:
    """Flatten a group row into a recentGroups entry."""
    return {
        "id": group.id,
        "name": group.name,
        "subject": group.subject,
        "member_count": member_count or 0,
        "last_activity": group.updated_at,
    }


def format_session(session: Any, group_name: str | None, host: Any | None) -> dict[str, Any]:
    """Flatten a session row into an upcomingSessions entry."""
    return {
        "id": session.id,
        "title": session.title,
        "group_name": group_name or UNKNOWN_GROUP,
        "time": session.scheduled_start,
        "host_name": format_host_name(
            getattr(host, "first_name", None),
            getattr(host, "last_name", None),
        ),
    }


def build_snapshot(
    *,
    recent_groups: list[dict[str, Any]],
    upcoming_sessions: list[dict[str, Any]],
    stats: StudyStats,
    today_progress: int,
    week_progress: int,
    weekly_goal: int,
) -> dict[str, Any]:
    """Assemble the dashboard payload (snake_case; the response model camelCases it)."""
    return {
        "recent_groups": recent_groups,
        "upcoming_sessions": upcoming_sessions,
        "stats": stats.as_dict(),
        "today_progress": today_progress,
        "week_progress": week_progress,
        "weekly_goal": weekly_goal,
    }
