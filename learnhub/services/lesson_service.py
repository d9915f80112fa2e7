"""课程服务层：加载课程树与课程增删改。"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from learnhub.db import parse_object_id
from learnhub.models import Chapter, ChapterCompletion, Enrollment, Lesson
from learnhub.models.lesson import utc_now

LESSON_FILTER_KEYS = ("status", "creator_id")


def _fmt_dt(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_chapter(chapter: Any) -> dict[str, Any]:
    """章节仅输出 id 与名称。"""

    return {"id": str(chapter.id), "name": chapter.name}


def serialize_lesson(lesson: Any, chapters: Iterable[Any] | None = None) -> dict[str, Any]:
    data = {
        "id": str(lesson.id),
        "name": lesson.name,
        "description": lesson.description,
        "status": lesson.status,
        "creator_id": lesson.creator_id,
        "created_at": _fmt_dt(lesson.created_at),
        "updated_at": _fmt_dt(lesson.updated_at),
    }
    if chapters is not None:
        data["chapters"] = [serialize_chapter(chapter) for chapter in chapters]
    return data


def group_chapters(chapters: Iterable[Any]) -> dict[str, list[Any]]:
    """按课程分组章节，组内按 position 排序（同序时保持原顺序）。"""

    grouped: dict[str, list[Any]] = {}
    for chapter in chapters:
        grouped.setdefault(str(chapter.lesson_id), []).append(chapter)
    return {key: sorted(items, key=lambda item: item.position) for key, items in grouped.items()}


def build_lesson_trees(lessons: Iterable[Any], chapters: Iterable[Any]) -> list[dict[str, Any]]:
    grouped = group_chapters(chapters)
    return [serialize_lesson(lesson, grouped.get(str(lesson.id), [])) for lesson in lessons]


def parse_lesson_filters(values: dict[str, Any]) -> dict[str, str]:
    """仅保留允许的查询字段，未知字段忽略。"""

    filters: dict[str, str] = {}
    for key in LESSON_FILTER_KEYS:
        value = str(values.get(key) or "").strip()
        if value:
            filters[key] = value
    return filters


async def _load_chapters(lesson_ids: list[str]) -> list[Chapter]:
    if not lesson_ids:
        return []
    return await Chapter.find({"lesson_id": {"$in": lesson_ids}}).sort("position").to_list()


async def get_lesson(lesson_id: str) -> Lesson | None:
    object_id = parse_object_id(lesson_id)
    if object_id is None:
        return None
    return await Lesson.get(object_id)


async def get_lesson_tree(lesson_id: str) -> dict[str, Any] | None:
    lesson = await get_lesson(lesson_id)
    if not lesson:
        return None
    chapters = await _load_chapters([str(lesson.id)])
    return build_lesson_trees([lesson], chapters)[0]


async def list_lesson_trees(filters: dict[str, str] | None = None) -> list[dict[str, Any]]:
    lessons = await Lesson.find(filters or {}).sort("-updated_at").to_list()
    chapters = await _load_chapters([str(lesson.id) for lesson in lessons])
    return build_lesson_trees(lessons, chapters)


async def create_lesson(payload: dict[str, Any], creator_id: str) -> Lesson:
    lesson = Lesson(
        name=payload["name"],
        description=payload.get("description", ""),
        status=payload.get("status", "draft"),
        creator_id=creator_id,
        created_at=utc_now(),
        updated_at=utc_now(),
    )
    await lesson.insert()
    return lesson


async def update_lesson(lesson: Lesson, payload: dict[str, Any]) -> Lesson:
    for key in ("name", "description", "status"):
        if key in payload and payload[key] is not None:
            setattr(lesson, key, payload[key])
    lesson.updated_at = utc_now()
    await lesson.save()
    return lesson


async def delete_lesson(lesson: Lesson) -> None:
    """删除课程，并清理其章节及关联的学习记录。"""

    lesson_id = str(lesson.id)
    chapters = await Chapter.find({"lesson_id": lesson_id}).to_list()
    chapter_ids = [str(chapter.id) for chapter in chapters]
    if chapter_ids:
        await ChapterCompletion.find({"chapter_id": {"$in": chapter_ids}}).delete()
    await Chapter.find({"lesson_id": lesson_id}).delete()
    await Enrollment.find({"course_id": lesson_id}).delete()
    await lesson.delete()
