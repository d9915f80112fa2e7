"""角色-能力权限表：静态规则的加载、校验与索引。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from learnhub.config import PERMISSION_TABLE_FILE
from learnhub.errors import PermissionTableError

logger = logging.getLogger(__name__)


class Scope(str, Enum):
    """规则作用域：any 无条件、own 需归属匹配、none 始终拒绝。"""

    ANY = "any"
    OWN = "own"
    NONE = "none"


class Action(str, Enum):
    """资源动作。"""

    CREATE_ANY = "createAny"
    CREATE_OWN = "createOwn"
    READ_ANY = "readAny"
    READ_OWN = "readOwn"
    UPDATE_ANY = "updateAny"
    UPDATE_OWN = "updateOwn"
    DELETE_ANY = "deleteAny"
    DELETE_OWN = "deleteOwn"


RuleKey = tuple[str, Action, str]


@dataclass(frozen=True, slots=True)
class PermissionRule:
    """单条权限规则（角色-动作-资源类型 → 作用域）。"""

    role: str
    action: Action
    resource_type: str
    scope: Scope
    attributes: tuple[str, ...] | None = None

    @property
    def key(self) -> RuleKey:
        return (self.role, self.action, self.resource_type)


@dataclass(frozen=True, slots=True)
class PermissionTable:
    """只读权限表，初始化后不再变更。"""

    roles: frozenset[str]
    rules: tuple[PermissionRule, ...]
    _index: Mapping[RuleKey, PermissionRule] = field(repr=False, compare=False)

    @property
    def resource_types(self) -> frozenset[str]:
        return frozenset(rule.resource_type for rule in self.rules)

    def lookup(self, role: str, action: Action, resource_type: str) -> PermissionRule | None:
        return self._index.get((role, action, resource_type))

    def __len__(self) -> int:
        return len(self.rules)


DEFAULT_ROLES = ("student", "teacher", "admin", "superadmin")
RESOURCE_TYPES = ("lesson", "chapter", "enrollment")

DEFAULT_RULES: list[tuple[Any, ...]] = [
    ("student", "readAny", "lesson", "any", ["*", "!creator_id"]),
    ("student", "readAny", "chapter", "any"),
    ("student", "deleteAny", "lesson", "none"),
    ("student", "createOwn", "enrollment", "own"),
    ("student", "readOwn", "enrollment", "own"),
    ("student", "deleteOwn", "enrollment", "own"),
    ("teacher", "createAny", "lesson", "any"),
    ("teacher", "readAny", "lesson", "any"),
    ("teacher", "updateAny", "lesson", "any"),
    ("teacher", "deleteOwn", "lesson", "own"),
    ("teacher", "createAny", "chapter", "any"),
    ("teacher", "readAny", "chapter", "any"),
    ("teacher", "updateAny", "chapter", "any"),
    ("teacher", "deleteOwn", "chapter", "own"),
    ("teacher", "createOwn", "enrollment", "own"),
    ("teacher", "readOwn", "enrollment", "own"),
    ("teacher", "readAny", "enrollment", "any"),
    *[
        ("admin", action, resource, "any")
        for resource in ("lesson", "chapter")
        for action in ("createAny", "readAny", "updateAny", "deleteAny", "deleteOwn")
    ],
    ("admin", "readAny", "enrollment", "any"),
    ("admin", "readOwn", "enrollment", "any"),
    ("admin", "createOwn", "enrollment", "any"),
    *[("superadmin", action.value, resource, "any") for resource in RESOURCE_TYPES for action in Action],
]


def _parse_enum(enum_cls: type[Enum], value: Any, label: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip())
    except ValueError:
        raise PermissionTableError(f"未知{label}: {value!r}") from None


def _normalize_attributes(raw: Any) -> tuple[str, ...] | None:
    """清洗属性过滤列表并保持顺序去重。"""

    if raw is None:
        return None
    if isinstance(raw, str) or not isinstance(raw, Iterable):
        raise PermissionTableError(f"attributes 必须是字符串列表: {raw!r}")
    items: list[str] = []
    for item in raw:
        value = str(item).strip()
        if not value or value in items:
            continue
        items.append(value)
    return tuple(items)


def parse_rule(raw: PermissionRule | Mapping[str, Any] | list[Any] | tuple[Any, ...]) -> PermissionRule:
    """将元组、字典或规则对象解析为 PermissionRule。"""

    if isinstance(raw, PermissionRule):
        return raw
    if isinstance(raw, Mapping):
        values = [raw.get("role"), raw.get("action"), raw.get("resource_type"), raw.get("scope"), raw.get("attributes")]
    elif isinstance(raw, (list, tuple)):
        values = list(raw)
        if len(values) not in {4, 5}:
            raise PermissionTableError(f"规则必须包含 4 或 5 个字段: {values!r}")
        values += [None] * (5 - len(values))
    else:
        raise PermissionTableError(f"规则必须是列表或对象: {raw!r}")

    role = str(values[0] or "").strip()
    resource_type = str(values[2] or "").strip()
    if not role:
        raise PermissionTableError("规则 role 不能为空")
    if not resource_type:
        raise PermissionTableError("规则 resource_type 不能为空")

    return PermissionRule(
        role=role,
        action=_parse_enum(Action, values[1], "动作"),
        resource_type=resource_type,
        scope=_parse_enum(Scope, values[3], "作用域"),
        attributes=_normalize_attributes(values[4]),
    )


def build_permission_table(
    rules: Iterable[PermissionRule | Mapping[str, Any] | Iterable[Any]],
    *,
    roles: Iterable[str] | None = None,
) -> PermissionTable:
    """校验规则并构建索引，重复的 (role, action, resource_type) 直接拒绝。"""

    if roles is not None and (isinstance(roles, str) or not isinstance(roles, Iterable)):
        raise PermissionTableError(f"roles 必须是字符串列表: {roles!r}")
    declared = frozenset(str(role).strip() for role in roles) if roles is not None else None
    if declared is not None and "" in declared:
        raise PermissionTableError("角色名不能为空")

    index: dict[RuleKey, PermissionRule] = {}
    for raw in rules:
        rule = parse_rule(raw)
        if declared is not None and rule.role not in declared:
            raise PermissionTableError(f"规则引用了未声明的角色: {rule.role}")
        if rule.key in index:
            raise PermissionTableError(
                f"重复的权限规则: {rule.role}:{rule.action.value}:{rule.resource_type}"
            )
        index[rule.key] = rule

    return PermissionTable(
        roles=declared if declared is not None else frozenset(rule.role for rule in index.values()),
        rules=tuple(index.values()),
        _index=MappingProxyType(index),
    )


def read_table_file(path: Path) -> dict[str, Any]:
    """读取 JSON 权限表文件。"""

    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise PermissionTableError(f"权限表文件不是 UTF-8 编码: {path} ({exc})") from exc
    except json.JSONDecodeError as exc:
        raise PermissionTableError(f"权限表文件不是合法 JSON: {path} ({exc})") from exc
    if not isinstance(payload, dict) or not isinstance(payload.get("rules"), list):
        raise PermissionTableError(f"权限表文件缺少 rules 列表: {path}")
    roles = payload.get("roles")
    if roles is not None and (
        not isinstance(roles, list) or not all(isinstance(role, str) for role in roles)
    ):
        raise PermissionTableError(f"权限表文件的 roles 必须是字符串列表: {path}")
    return payload


def load_permission_table(path: Path | None = None) -> PermissionTable:
    """加载权限表：未指定文件时使用内置默认规则。"""

    if path is None:
        table = build_permission_table(DEFAULT_RULES, roles=DEFAULT_ROLES)
        logger.info("已加载内置权限表: roles=%d rules=%d", len(table.roles), len(table))
        return table

    payload = read_table_file(path)
    table = build_permission_table(payload["rules"], roles=payload.get("roles"))
    logger.info("已加载权限表文件 %s: roles=%d rules=%d", path, len(table.roles), len(table))
    return table


_active_table: PermissionTable | None = None


def configure_permission_table(table: PermissionTable) -> PermissionTable:
    """安装进程级权限表（启动时调用一次）。"""

    global _active_table
    _active_table = table
    return table


def get_permission_table() -> PermissionTable:
    if _active_table is None:
        return configure_permission_table(load_permission_table(PERMISSION_TABLE_FILE))
    return _active_table


def reset_permission_table() -> None:
    """清空已安装的权限表（测试用）。"""

    global _active_table
    _active_table = None


def describe_roles(table: PermissionTable) -> dict[str, list[str]]:
    """按角色列出规则摘要。"""

    summary: dict[str, list[str]] = {role: [] for role in sorted(table.roles)}
    for rule in table.rules:
        summary.setdefault(rule.role, []).append(f"{rule.action.value}:{rule.resource_type}={rule.scope.value}")
    return {role: sorted(items) for role, items in summary.items()}
