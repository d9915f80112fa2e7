"""请求主体解析与访问控制中间层。"""

from __future__ import annotations

import logging

from fastapi import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from learnhub.services import user_service
from learnhub.services.access_service import AccessDecision, Actor, ResourceRef, decide
from learnhub.services.permission_table import Action

logger = logging.getLogger(__name__)

PROTECTED_PREFIXES = ("/lessons", "/enrollments")


def is_protected_path(path: str, prefixes: tuple[str, ...] = PROTECTED_PREFIXES) -> bool:
    """按路径段匹配受保护前缀，/lessons 不覆盖 /lessonsfoo。"""

    return any(path == prefix or path.startswith(prefix + "/") for prefix in prefixes)


def unauthorized_response(message: str) -> Response:
    """返回统一的 401 响应。"""

    return JSONResponse({"detail": message}, status_code=401)


class ActorMiddleware(BaseHTTPMiddleware):
    """从 Session 解析当前用户，未登录访问受保护路径时返回 401。"""

    def __init__(self, app, protected_prefixes: tuple[str, ...] = PROTECTED_PREFIXES):
        super().__init__(app)
        self.protected_prefixes = protected_prefixes

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.actor = None
        if not is_protected_path(request.url.path, self.protected_prefixes):
            return await call_next(request)

        user = await user_service.get_user_by_id(request.session.get("user_id"))
        if not user or user.status != "enabled":
            request.session.clear()
            return unauthorized_response("请先登录。")

        request.state.actor = user_service.to_actor(user)
        return await call_next(request)


def current_actor(request: Request) -> Actor:
    actor = getattr(request.state, "actor", None)
    if actor is None:
        raise HTTPException(status_code=401, detail="请先登录。")
    return actor


def ensure_access(
    request: Request,
    action: Action,
    resource_type: str,
    owner_id: str | None = None,
) -> AccessDecision:
    """执行访问决策，拒绝时抛出 403。"""

    actor = current_actor(request)
    decision = decide(actor, action, ResourceRef(resource_type=resource_type, owner_id=owner_id))
    if not decision.granted:
        logger.info(
            "拒绝访问 actor=%s role=%s action=%s resource=%s reason=%s",
            actor.id,
            actor.role,
            action.value,
            resource_type,
            decision.reason_code,
        )
        raise HTTPException(
            status_code=403,
            detail="当前账号没有执行该操作的权限。",
            headers={"X-Access-Reason": decision.reason_code or ""},
        )
    return decision
