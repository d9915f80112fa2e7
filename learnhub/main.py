"""FastAPI 应用入口。"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from .apps.api.controllers.enrollments import router as enrollments_router
from .apps.api.controllers.lessons import router as lessons_router
from .config import APP_NAME, PERMISSION_TABLE_FILE, SECRET_KEY
from .db import close_db, init_db
from .middleware.auth import ActorMiddleware
from .services.permission_table import configure_permission_table, load_permission_table


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """应用生命周期：启动时加载权限表并初始化数据库，退出时释放资源。"""

    configure_permission_table(load_permission_table(PERMISSION_TABLE_FILE))
    await init_db()
    try:
        yield
    finally:
        await close_db()


app = FastAPI(title=APP_NAME, lifespan=lifespan)
app.add_middleware(ActorMiddleware)
app.add_middleware(SessionMiddleware, secret_key=SECRET_KEY, session_cookie="learnhub_session")
app.include_router(lessons_router)
app.include_router(enrollments_router)
