"""用户模型。"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from beanie import Document
from pydantic import Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class User(Document):
    """平台用户，角色决定其权限规则。"""

    username: str = Field(..., min_length=2, max_length=64)
    display_name: str = Field(default="", max_length=64)
    role: str = Field(default="student", min_length=2, max_length=32)
    status: Literal["enabled", "disabled"] = "enabled"
    created_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "users"
