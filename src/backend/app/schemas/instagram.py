from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, field_validator


def _parse_post_date(value: Any) -> Any:
    if value is None or isinstance(value, dt.datetime):
        return value
    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time.min, tzinfo=dt.timezone.utc)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            parsed_date = dt.date.fromisoformat(stripped)
        except ValueError:
            pass
        else:
            return dt.datetime.combine(parsed_date, dt.time.min, tzinfo=dt.timezone.utc)
        try:
            return dt.datetime.fromisoformat(stripped.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValueError("post_date must be YYYY-MM-DD or an ISO-8601 timestamp.") from exc
    return value


class PostCreate(BaseModel):
    # Required in practice; checked by the route so a missing URL yields 400.
    post_url: str | None = None
    post_date: dt.datetime | None = None

    @field_validator("post_url", mode="before")
    @classmethod
    def _strip_url(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("post_date", mode="before")
    @classmethod
    def _validate_post_date(cls, value: Any) -> Any:
        return _parse_post_date(value)


class PostRead(BaseModel):
    id: int
    post_url: str
    post_date: dt.datetime | None = None
    created_at: dt.datetime

    model_config = {
        "from_attributes": True,
    }


class PostCreatedResponse(BaseModel):
    message: str
    post: PostRead


class LeadRead(BaseModel):
    id: int
    username: str
    profile_url: str
    post_id: int | None = None
    last_updated: dt.datetime

    model_config = {
        "from_attributes": True,
    }


class ScrapeRequest(BaseModel):
    post_url: str | None = None
    post_id: int | None = None

    @field_validator("post_url", mode="before")
    @classmethod
    def _strip_url(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value


class MessageResponse(BaseModel):
    message: str


class LeadImportResponse(BaseModel):
    message: str
    received: int
    saved: int
    skipped: int
