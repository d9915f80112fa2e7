"""选课与章节完成记录模型。"""

from __future__ import annotations

from datetime import datetime, timezone

from beanie import Document
from pymongo import IndexModel
from pydantic import Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Enrollment(Document):
    """用户选课记录。"""

    user_id: str = Field(..., min_length=1, max_length=64)
    course_id: str = Field(..., min_length=1, max_length=64)
    created_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "enrollments"
        indexes = [
            IndexModel([("user_id", 1), ("course_id", 1)], name="idx_enrollments_user_course", unique=True),
        ]


class ChapterCompletion(Document):
    """用户章节完成记录。"""

    user_id: str = Field(..., min_length=1, max_length=64)
    chapter_id: str = Field(..., min_length=1, max_length=64)
    completed: bool = False
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "chapter_completions"
