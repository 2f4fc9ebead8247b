"""Study session Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from studyhub.schemas import CamelModel


class ParticipantResultResponse(CamelModel):
    """Minutes credited to one participant."""

    user_id: int
    duration: int
    new_achievements: list[str]


class SessionCompleteResponse(CamelModel):
    """Completed session with per-participant results."""

    id: int
    status: str
    actual_end: datetime
    participants: list[ParticipantResultResponse]
