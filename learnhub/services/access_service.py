"""访问决策引擎：基于角色与资源归属判定授权。"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import fnmatch
from typing import Any, Mapping

from learnhub.errors import InvariantViolation
from learnhub.services.permission_table import Action, PermissionTable, Scope, get_permission_table


class DenyReason(str, Enum):
    """拒绝原因，仅用于诊断；调用方可统一折叠为 403。"""

    UNKNOWN_ROLE = "UnknownRole"
    NO_RULE = "NoRule"
    SCOPE_NONE = "ScopeNone"
    NOT_OWNER = "NotOwner"
    OWNERSHIP_UNKNOWN = "OwnershipUnknown"


@dataclass(frozen=True, slots=True)
class Actor:
    """当前请求的已认证主体。"""

    id: str
    role: str


@dataclass(frozen=True, slots=True)
class ResourceRef:
    """待访问资源；owner_id 为空表示无法校验归属。"""

    resource_type: str
    owner_id: str | None = None


@dataclass(frozen=True, slots=True)
class AccessDecision:
    """访问决策结果。"""

    granted: bool
    reason: DenyReason | None = None
    attributes: tuple[str, ...] | None = None

    @property
    def reason_code(self) -> str | None:
        return self.reason.value if self.reason else None

    def filter(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """按规则属性过滤返回字段，无过滤配置时原样返回。"""

        if self.attributes is None:
            return dict(data)
        return filter_attributes(data, self.attributes)


def _deny(reason: DenyReason) -> AccessDecision:
    return AccessDecision(granted=False, reason=reason)


def _coerce_action(action: Action | str) -> Action:
    if isinstance(action, Action):
        return action
    try:
        return Action(str(action))
    except ValueError:
        raise InvariantViolation(f"未知动作: {action!r}") from None


def decide(
    actor: Actor,
    action: Action | str,
    resource_ref: ResourceRef,
    table: PermissionTable | None = None,
) -> AccessDecision:
    """判定 actor 能否对 resource_ref 执行 action。

    未配置规则时默认拒绝；own 作用域在缺少 owner_id 时同样拒绝。
    """

    if actor is None or resource_ref is None:
        raise InvariantViolation("actor 与 resource_ref 不能为空")
    if not resource_ref.resource_type:
        raise InvariantViolation("resource_type 不能为空")
    resolved_action = _coerce_action(action)
    table = table if table is not None else get_permission_table()

    if actor.role not in table.roles:
        return _deny(DenyReason.UNKNOWN_ROLE)

    rule = table.lookup(actor.role, resolved_action, resource_ref.resource_type)
    if rule is None:
        return _deny(DenyReason.NO_RULE)

    if rule.scope is Scope.NONE:
        return _deny(DenyReason.SCOPE_NONE)

    if rule.scope is Scope.OWN:
        if resource_ref.owner_id is None:
            return _deny(DenyReason.OWNERSHIP_UNKNOWN)
        if resource_ref.owner_id != actor.id:
            return _deny(DenyReason.NOT_OWNER)

    return AccessDecision(granted=True, attributes=rule.attributes)


def filter_attributes(data: Mapping[str, Any], attributes: tuple[str, ...] | list[str]) -> dict[str, Any]:
    """应用属性过滤：`*` 表示全部，`!name` 排除，支持通配符。"""

    includes = [item for item in attributes if not item.startswith("!")]
    excludes = [item[1:] for item in attributes if item.startswith("!")]

    result: dict[str, Any] = {}
    for key, value in data.items():
        if not any(fnmatch.fnmatchcase(key, pattern) for pattern in includes):
            continue
        if any(fnmatch.fnmatchcase(key, pattern) for pattern in excludes):
            continue
        result[key] = value
    return result
