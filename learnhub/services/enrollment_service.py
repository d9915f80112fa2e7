"""选课服务层。"""

from __future__ import annotations

from typing import Any, Iterable

from pymongo.errors import DuplicateKeyError

from learnhub.db import parse_object_id
from learnhub.models import Enrollment, Lesson
from learnhub.models.enrollment import utc_now


def serialize_enrollment(enrollment: Any) -> dict[str, Any]:
    return {
        "id": str(enrollment.id),
        "user_id": enrollment.user_id,
        "course_id": enrollment.course_id,
        "created_at": enrollment.created_at.isoformat() if enrollment.created_at else None,
    }


def serialize_user_enrollments(user: Any, courses: Iterable[Any]) -> dict[str, Any]:
    """用户及其已选课程（仅 id 与名称）。"""

    return {
        "id": str(user.id),
        "username": user.username,
        "display_name": user.display_name,
        "role": user.role,
        "enrolled_courses": [{"id": str(course.id), "name": course.name} for course in courses],
    }


async def find_enrollment(user_id: str, course_id: str) -> Enrollment | None:
    return await Enrollment.find_one({"user_id": user_id, "course_id": course_id})


async def enroll(user_id: str, course_id: str) -> Enrollment:
    """选课；已存在时直接返回原记录。"""

    existing = await find_enrollment(user_id, course_id)
    if existing:
        return existing
    enrollment = Enrollment(user_id=user_id, course_id=course_id, created_at=utc_now())
    try:
        await enrollment.insert()
    except DuplicateKeyError:
        # 并发选课由唯一索引兜底
        existing = await find_enrollment(user_id, course_id)
        if existing is None:
            raise
        return existing
    return enrollment


async def list_enrollments(user_id: str) -> list[Enrollment]:
    return await Enrollment.find({"user_id": user_id}).sort("-created_at").to_list()


async def list_enrolled_courses(user_id: str) -> list[Lesson]:
    """按选课时间顺序返回已选课程。"""

    enrollments = await Enrollment.find({"user_id": user_id}).sort("created_at").to_list()
    object_ids = [oid for oid in (parse_object_id(item.course_id) for item in enrollments) if oid is not None]
    if not object_ids:
        return []
    lessons = await Lesson.find({"_id": {"$in": object_ids}}).to_list()
    by_id = {str(lesson.id): lesson for lesson in lessons}
    return [by_id[str(oid)] for oid in object_ids if str(oid) in by_id]
