"""Request/response schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from studyhub.schemas import CamelModel


class GroupSummaryResponse(CamelModel):
    """Group listed on a profile."""

    id: int
    name: str | None = None
    subject: str
    privacy: str


class UserResponse(CamelModel):
    """Public user profile."""

    id: int
    username: str
    first_name: str
    last_name: str
    avatar_url: str | None = None
    bio: str | None = None
    study_preferences: dict[str, Any] = {}
    created_at: datetime | None = None


class UserProfileResponse(UserResponse):
    """Profile with the user's active groups."""

    groups: list[GroupSummaryResponse] = []


class UserSearchResult(CamelModel):
    """Trimmed-down user for search results."""

    id: int
    username: str
    first_name: str
    last_name: str
    avatar_url: str | None = None
    bio: str | None = None
    study_preferences: dict[str, Any] = {}


class ProfileUpdateRequest(CamelModel):
    """Profile fields a user may change. Unset fields stay as they are."""

    first_name: str | None = Field(None, max_length=64)
    last_name: str | None = Field(None, max_length=64)
    bio: str | None = Field(None, max_length=500)
    avatar_url: str | None = None
    study_preferences: dict[str, Any] | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        """Names may be omitted but not blank."""
        if v is None:
            return v
        v = v.strip()
        if not v:
            msg = "must not be blank"
            raise ValueError(msg)
        return v

    @field_validator("bio")
    @classmethod
    def strip_bio(cls, v: str | None) -> str | None:
        """Trim surrounding whitespace."""
        return v.strip() if v is not None else v
