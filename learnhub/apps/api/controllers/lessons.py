"""课程接口控制器。"""

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from learnhub.middleware.auth import current_actor, ensure_access
from learnhub.services import completion_service, lesson_service, progress_service
from learnhub.services.permission_table import Action

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lessons")

RESOURCE = "lesson"


class LessonPayload(BaseModel):
    """新建课程提交内容。"""

    name: str = Field(..., min_length=1, max_length=120)
    description: str = Field(default="", max_length=2000)
    status: Literal["published", "draft"] = "draft"


class LessonPatch(BaseModel):
    """编辑课程提交内容，字段均可选。"""

    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=2000)
    status: Literal["published", "draft"] | None = None


class LessonCreateBody(BaseModel):
    lesson: LessonPayload


class LessonUpdateBody(BaseModel):
    lesson: LessonPatch


async def _annotate_progress(nodes: dict[str, Any] | list[dict[str, Any]], actor_id: str) -> None:
    chapter_ids = completion_service.collect_chapter_ids(nodes)
    facts = await completion_service.load_completion_facts(actor_id, chapter_ids)
    result = progress_service.annotate_batch(nodes, actor_id, facts)
    if not result.ok:
        logger.warning("进度聚合部分失败 actor=%s failures=%d", actor_id, len(result.failures))


async def _get_lesson_or_404(lesson_id: str):
    lesson = await lesson_service.get_lesson(lesson_id)
    if not lesson:
        raise HTTPException(status_code=404, detail="课程不存在。")
    return lesson


@router.get("/{lesson_id}")
async def get_lesson(request: Request, lesson_id: str) -> dict[str, Any]:
    actor = current_actor(request)
    decision = ensure_access(request, Action.READ_ANY, RESOURCE)

    lesson = await lesson_service.get_lesson_tree(lesson_id)
    if lesson is None:
        raise HTTPException(status_code=404, detail="课程不存在。")

    await _annotate_progress(lesson, actor.id)
    return {"lesson": decision.filter(lesson)}


@router.get("")
async def list_lessons(request: Request) -> dict[str, Any]:
    actor = current_actor(request)
    decision = ensure_access(request, Action.READ_ANY, RESOURCE)

    filters = lesson_service.parse_lesson_filters(dict(request.query_params))
    lessons = await lesson_service.list_lesson_trees(filters)

    await _annotate_progress(lessons, actor.id)
    return {"lessons": [decision.filter(lesson) for lesson in lessons]}


@router.post("", status_code=201)
async def create_lesson(request: Request, body: LessonCreateBody) -> dict[str, Any]:
    actor = current_actor(request)
    ensure_access(request, Action.CREATE_ANY, RESOURCE, owner_id=actor.id)

    lesson = await lesson_service.create_lesson(body.lesson.model_dump(), creator_id=actor.id)
    logger.info("新建课程 id=%s actor=%s", lesson.id, actor.id)
    return {"lesson": lesson_service.serialize_lesson(lesson)}


@router.put("/{lesson_id}", status_code=201)
async def update_lesson(request: Request, lesson_id: str, body: LessonUpdateBody) -> dict[str, Any]:
    lesson = await _get_lesson_or_404(lesson_id)
    ensure_access(request, Action.UPDATE_ANY, RESOURCE, owner_id=lesson.creator_id)

    lesson = await lesson_service.update_lesson(lesson, body.lesson.model_dump(exclude_none=True))
    return {"lesson": lesson_service.serialize_lesson(lesson)}


@router.delete("/{lesson_id}")
async def delete_lesson(request: Request, lesson_id: str) -> dict[str, Any]:
    lesson = await _get_lesson_or_404(lesson_id)
    ensure_access(request, Action.DELETE_OWN, RESOURCE, owner_id=lesson.creator_id)

    payload = lesson_service.serialize_lesson(lesson)
    await lesson_service.delete_lesson(lesson)
    logger.info("删除课程 id=%s actor=%s", payload["id"], current_actor(request).id)
    return {"lesson": payload}
