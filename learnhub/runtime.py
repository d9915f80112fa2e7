"""HTTP 服务启动参数。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from learnhub.config import APP_PORT, HTTP_WORKERS, UVICORN_HOST, UVICORN_LOG_LEVEL, UVICORN_RELOAD

APP_IMPORT_PATH = "learnhub.main:app"


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Uvicorn 运行配置。"""

    http_workers: int
    app_port: int
    uvicorn_host: str
    uvicorn_log_level: str
    uvicorn_reload: bool


def load_runtime_config() -> RuntimeConfig:
    """从全局配置读取启动参数。"""

    return RuntimeConfig(
        http_workers=max(HTTP_WORKERS, 1),
        app_port=max(APP_PORT, 1),
        uvicorn_host=UVICORN_HOST,
        uvicorn_log_level=UVICORN_LOG_LEVEL,
        uvicorn_reload=UVICORN_RELOAD,
    )


def build_uvicorn_options(config: RuntimeConfig) -> dict[str, Any]:
    """构建 uvicorn.run 参数，reload 模式下只能单进程。"""

    return {
        "app": APP_IMPORT_PATH,
        "host": config.uvicorn_host,
        "port": config.app_port,
        "workers": 1 if config.uvicorn_reload else config.http_workers,
        "log_level": config.uvicorn_log_level,
        "reload": config.uvicorn_reload,
    }
