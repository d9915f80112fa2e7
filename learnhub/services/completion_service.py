"""章节完成记录服务层：为进度聚合提供查询源。"""

from __future__ import annotations

from typing import Any, Iterable

from learnhub.models import ChapterCompletion
from learnhub.services.progress_service import CompletionFacts


def collect_chapter_ids(node_or_nodes: dict[str, Any] | list[dict[str, Any]]) -> list[str]:
    """收集课程树中全部章节 ID（保持出现顺序去重）。"""

    nodes = [node_or_nodes] if isinstance(node_or_nodes, dict) else node_or_nodes
    chapter_ids: list[str] = []
    for node in nodes:
        for chapter in node.get("chapters") or []:
            chapter_id = str(chapter.get("id"))
            if chapter_id not in chapter_ids:
                chapter_ids.append(chapter_id)
    return chapter_ids


def build_completion_facts(user_id: str, records: Iterable[Any]) -> CompletionFacts:
    known: set[str] = set()
    completed: set[str] = set()
    for record in records:
        if record.user_id != user_id:
            continue
        known.add(record.chapter_id)
        if record.completed:
            completed.add(record.chapter_id)
    return CompletionFacts(actor_id=user_id, completed=frozenset(completed), known=frozenset(known))


async def load_completion_facts(user_id: str, chapter_ids: list[str]) -> CompletionFacts:
    if not chapter_ids:
        return CompletionFacts(actor_id=user_id)
    records = await ChapterCompletion.find({"user_id": user_id, "chapter_id": {"$in": chapter_ids}}).to_list()
    return build_completion_facts(user_id, records)
