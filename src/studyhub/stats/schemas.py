"""Study statistics Pydantic schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from studyhub.schemas import CamelModel


class StudyStatsResponse(CamelModel):
    """A user's running study statistics."""

    total_study_time: int
    sessions_completed: int
    streak: int
    achievements: list[str]
    last_study_date: date | None = None


class UserStatsResponse(StudyStatsResponse):
    """Study statistics plus group counts."""

    total_groups: int
    owned_groups: int
    join_date: datetime | None = None


class StudyTimeRequest(CamelModel):
    """Completed study time in minutes.

    ``duration`` is validated by the stats engine so missing, non-integer and
    non-positive values all fail the same way (400) before anything is written.
    """

    duration: Any = None
    session_id: int | str | None = None


class StudyTimeResponse(CamelModel):
    """Updated stats and achievements unlocked by this submission."""

    message: str
    stats: StudyStatsResponse
    new_achievements: list[str]
