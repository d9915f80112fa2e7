"""选课接口控制器。"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request

from learnhub.middleware.auth import current_actor, ensure_access
from learnhub.services import enrollment_service, lesson_service, progress_service, user_service
from learnhub.services.permission_table import Action

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/enrollments")

RESOURCE = "enrollment"


@router.post("")
async def create_enrollment(request: Request, course_id: str = Query(..., min_length=1)) -> dict[str, Any]:
    actor = current_actor(request)
    ensure_access(request, Action.CREATE_OWN, RESOURCE, owner_id=actor.id)

    if not await lesson_service.get_lesson(course_id):
        raise HTTPException(status_code=404, detail="课程不存在。")

    enrollment = await enrollment_service.enroll(actor.id, course_id)
    logger.info("选课 user=%s course=%s", actor.id, course_id)
    return {"enrollments": enrollment_service.serialize_enrollment(enrollment)}


@router.get("")
async def list_enrollments(request: Request) -> dict[str, Any]:
    actor = current_actor(request)
    ensure_access(request, Action.READ_OWN, RESOURCE, owner_id=actor.id)

    enrollments = await enrollment_service.list_enrollments(actor.id)
    return {"enrollment": [enrollment_service.serialize_enrollment(item) for item in enrollments]}


@router.get("/user")
async def get_user_enrollments(request: Request, user_id: str | None = None) -> dict[str, Any]:
    actor = current_actor(request)
    target_id = user_id or actor.id
    action = Action.READ_OWN if target_id == actor.id else Action.READ_ANY
    ensure_access(request, action, RESOURCE, owner_id=target_id)

    user = await user_service.get_user_by_id(target_id)
    if not user:
        raise HTTPException(status_code=404, detail="用户不存在。")

    courses = await enrollment_service.list_enrolled_courses(str(user.id))
    payload = enrollment_service.serialize_user_enrollments(user, courses)
    progress_service.tag_content(payload, "enrolled_courses", progress_service.COURSE_TYPE)
    return {"user": payload}
