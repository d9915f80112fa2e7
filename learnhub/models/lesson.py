"""课程与章节模型。"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from beanie import Document
from pydantic import Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Lesson(Document):
    """课程。"""

    name: str = Field(..., min_length=1, max_length=120)
    description: str = Field(default="", max_length=2000)
    status: Literal["published", "draft"] = "draft"
    creator_id: str = Field(..., min_length=1, max_length=64)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "lessons"


class Chapter(Document):
    """章节，按 position 决定在课程中的展示顺序。"""

    lesson_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=120)
    position: int = Field(default=0, ge=0)
    creator_id: str = Field(default="", max_length=64)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "chapters"
