"""Study streak and achievement bookkeeping.

Pure functions: no database, no clock. The caller supplies ``today`` and is
responsible for persisting the returned stats.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

from studyhub.exceptions import InvalidInput

EPOCH = date(1970, 1, 1)

FIRST_HOUR = "first-hour"
WEEK_STREAK = "week-streak"
SESSION_MASTER = "session-master"


@dataclass(frozen=True)
class StudyStats:
    """Snapshot of a user's running study statistics."""

    total_study_time: int = 0
    sessions_completed: int = 0
    streak: int = 0
    achievements: tuple[str, ...] = field(default_factory=tuple)
    last_study_date: date | None = None

    def as_dict(self) -> dict[str, Any]:
        """Field dict with achievements as a list, as stored and served."""
        return {
            "total_study_time": self.total_study_time,
            "sessions_completed": self.sessions_completed,
            "streak": self.streak,
            "achievements": list(self.achievements),
            "last_study_date": self.last_study_date,
        }


# Checked in this order; the order is also the order of newly unlocked ids.
ACHIEVEMENT_RULES: tuple[tuple[str, str, int], ...] = (
    (FIRST_HOUR, "total_study_time", 60),
    (WEEK_STREAK, "streak", 7),
    (SESSION_MASTER, "sessions_completed", 10),
)


def validate_duration(duration_minutes: object) -> int:
    """Return the duration as int or raise InvalidInput (missing, non-integer, < 1)."""
    if duration_minutes is None:
        msg = "duration is required"
        raise InvalidInput(msg)
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        msg = "duration must be an integer number of minutes"
        raise InvalidInput(msg)
    if duration_minutes < 1:
        msg = "duration must be at least 1 minute"
        raise InvalidInput(msg)
    return duration_minutes


def compute_streak(streak: int, last_study_date: date | None, today: date) -> int:
    """Streak after studying on ``today``.

    Gap of 1 day continues the streak, a longer gap restarts it at 1, the same
    day leaves it as is. A missing last date counts as the epoch.
    """
    diff_days = (today - (last_study_date or EPOCH)).days
    if diff_days == 1:
        return streak + 1
    if diff_days > 1:
        return 1
    return streak


def unlocked_achievements(stats: StudyStats) -> list[str]:
    """Achievement ids whose threshold ``stats`` meets but which are not yet held."""
    held = set(stats.achievements)
    return [
        slug
        for slug, attr, threshold in ACHIEVEMENT_RULES
        if getattr(stats, attr) >= threshold and slug not in held
    ]


def record_study_time(
    stats: StudyStats,
    duration_minutes: int,
    today: date,
) -> tuple[StudyStats, list[str]]:
    """Apply one completed study session of ``duration_minutes`` to ``stats``.

    Returns the updated stats and the achievement ids newly unlocked by this
    call, in rule order. Achievements already held are never returned again
    and are never removed.
    """
    duration = validate_duration(duration_minutes)

    updated = replace(
        stats,
        total_study_time=stats.total_study_time + duration,
        sessions_completed=stats.sessions_completed + 1,
        streak=compute_streak(stats.streak, stats.last_study_date, today),
        last_study_date=today,
    )

    new_achievements = unlocked_achievements(updated)
    if new_achievements:
        updated = replace(updated, achievements=(*updated.achievements, *new_achievements))

    return updated, new_achievements
