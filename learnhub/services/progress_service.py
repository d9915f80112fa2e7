"""学习进度聚合：为课程树标注内容类型与完成百分比。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Callable, Iterable, Mapping, MutableMapping, Sequence, TypeVar

from learnhub.errors import InvariantViolation

logger = logging.getLogger(__name__)

CHAPTER_TYPE = "chapters"
COURSE_TYPE = "course"
PERCENTAGE_TYPE = "percentage"

CompletionSource = Callable[[str, str], bool | None]
Node = MutableMapping[str, Any]
NodeOrNodes = TypeVar("NodeOrNodes")


class ProgressStatus(str, Enum):
    OK = "ok"
    LOOKUP_FAILURE = "lookup_failure"


@dataclass(frozen=True, slots=True)
class CompletionFacts:
    """基于已加载完成记录的内存查询源。"""

    actor_id: str
    completed: frozenset[str] = field(default_factory=frozenset)
    known: frozenset[str] = field(default_factory=frozenset)

    def __call__(self, actor_id: str, chapter_id: str) -> bool | None:
        if actor_id != self.actor_id:
            return None
        if chapter_id in self.completed:
            return True
        if chapter_id in self.known:
            return False
        return None


@dataclass(frozen=True, slots=True)
class NodeResult:
    """单个节点的聚合结果。"""

    index: int
    node_id: Any
    status: ProgressStatus
    percent: int
    error: str | None = None


@dataclass(frozen=True, slots=True)
class BatchResult:
    items: tuple[NodeResult, ...]

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def failures(self) -> tuple[NodeResult, ...]:
        return tuple(item for item in self.items if item.status is ProgressStatus.LOOKUP_FAILURE)

    @property
    def percents(self) -> list[int]:
        return [item.percent for item in self.items]


def _as_sequence(node_or_nodes: Node | Sequence[Node]) -> Sequence[Node]:
    """单个节点视为长度为 1 的序列。"""

    if isinstance(node_or_nodes, Mapping):
        return [node_or_nodes]
    if isinstance(node_or_nodes, (str, bytes)) or not isinstance(node_or_nodes, Sequence):
        raise InvariantViolation(f"节点必须是映射或映射序列: {type(node_or_nodes).__name__}")
    return node_or_nodes


def _children(node: Any, children_key: str, position: int) -> list[MutableMapping[str, Any]]:
    if not isinstance(node, MutableMapping):
        raise InvariantViolation(f"第 {position} 个节点不是映射: {type(node).__name__}")
    children = node.get(children_key)
    if not isinstance(children, list):
        raise InvariantViolation(f"第 {position} 个节点缺少 {children_key} 列表")
    for child in children:
        if not isinstance(child, MutableMapping):
            raise InvariantViolation(f"第 {position} 个节点的 {children_key} 含非映射元素")
    return children


def tag_content(node_or_nodes: NodeOrNodes, children_key: str, discriminator: str) -> NodeOrNodes:
    """为子内容打上类型标记，重复调用结果不变。"""

    nodes = _as_sequence(node_or_nodes)
    batches = [_children(node, children_key, position) for position, node in enumerate(nodes)]
    for children in batches:
        for child in children:
            child["type"] = discriminator
    return node_or_nodes


def compute_percent(completed: int, total: int) -> int:
    """四舍五入（半数进位）的整数百分比，total 为 0 时返回 0。"""

    if total <= 0:
        return 0
    completed = min(max(completed, 0), total)
    return (200 * completed + total) // (2 * total)


def _chapter_id(chapter: Mapping[str, Any], position: int) -> str:
    chapter_id = chapter.get("id")
    if chapter_id is None:
        raise InvariantViolation(f"第 {position} 个节点存在缺少 id 的章节")
    return str(chapter_id)


def _count_completed(chapter_ids: Iterable[str], actor_id: str, completion_source: CompletionSource) -> int:
    return sum(1 for chapter_id in chapter_ids if completion_source(actor_id, chapter_id) is True)


def annotate_batch(
    nodes: Sequence[Node],
    actor_id: str,
    completion_source: CompletionSource,
) -> BatchResult:
    """按输入顺序聚合一批课程节点。

    先校验全部节点结构，结构非法时整体失败且不修改任何节点；
    单个节点查询完成记录失败只影响该节点（百分比记为 0）。
    """

    nodes = _as_sequence(nodes)
    prepared: list[tuple[Node, list[str]]] = []
    for position, node in enumerate(nodes):
        chapters = _children(node, "chapters", position)
        prepared.append((node, [_chapter_id(chapter, position) for chapter in chapters]))

    items: list[NodeResult] = []
    for position, (node, chapter_ids) in enumerate(prepared):
        for chapter in node["chapters"]:
            chapter["type"] = CHAPTER_TYPE

        try:
            completed = _count_completed(chapter_ids, actor_id, completion_source)
        except Exception as exc:
            logger.warning("完成记录查询失败 node=%s actor=%s", node.get("id"), actor_id, exc_info=True)
            percent = 0
            result = NodeResult(position, node.get("id"), ProgressStatus.LOOKUP_FAILURE, 0, str(exc) or type(exc).__name__)
        else:
            percent = compute_percent(completed, len(chapter_ids))
            result = NodeResult(position, node.get("id"), ProgressStatus.OK, percent)

        node["percentage"] = {"type": PERCENTAGE_TYPE, "percent": percent}
        items.append(result)

    return BatchResult(items=tuple(items))


def annotate(node_or_nodes: NodeOrNodes, actor_id: str, completion_source: CompletionSource) -> NodeOrNodes:
    """原地标注单个或多个课程节点，并返回传入的同一对象。"""

    annotate_batch(_as_sequence(node_or_nodes), actor_id, completion_source)
    return node_or_nodes
