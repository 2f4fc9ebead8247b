"""Dashboard Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from studyhub.schemas import CamelModel
from studyhub.stats.schemas import StudyStatsResponse


class RecentGroupResponse(CamelModel):
    """Group the user recently worked in."""

    id: int
    name: str | None = None
    subject: str
    member_count: int
    last_activity: datetime | None = None


class UpcomingSessionResponse(CamelModel):
    """Session the user hosts or joined that has not started yet."""

    id: int
    title: str
    group_name: str
    time: datetime
    host_name: str


class DashboardResponse(CamelModel):
    """Dashboard snapshot; minutes throughout."""

    recent_groups: list[RecentGroupResponse]
    upcoming_sessions: list[UpcomingSessionResponse]
    stats: StudyStatsResponse
    today_progress: int
    week_progress: int
    weekly_goal: int
