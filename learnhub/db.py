"""数据库初始化与连接管理。"""

from __future__ import annotations

from typing import Any, cast

from motor.motor_asyncio import AsyncIOMotorClient
from beanie import PydanticObjectId, init_beanie
from bson.errors import InvalidId

from .config import MONGO_DB, MONGO_URL
from .models import Chapter, ChapterCompletion, Enrollment, Lesson, User

_mongo_client: AsyncIOMotorClient | None = None


async def init_db() -> None:
    """初始化 Beanie，并保留客户端用于关闭。"""
    global _mongo_client
    _mongo_client = AsyncIOMotorClient(MONGO_URL)
    await init_beanie(
        # Motor 与 Beanie 的类型标注来源不同，这里显式转换避免类型检查误报。
        database=cast(Any, _mongo_client[MONGO_DB]),
        document_models=[User, Lesson, Chapter, Enrollment, ChapterCompletion],
    )


async def close_db() -> None:
    """关闭 Mongo 连接。"""
    if _mongo_client is not None:
        _mongo_client.close()


def parse_object_id(value: Any) -> PydanticObjectId | None:
    """解析路径或查询参数中的文档 ID，非法时返回 None。"""

    try:
        return PydanticObjectId(str(value))
    except (InvalidId, TypeError, ValueError):
        return None
