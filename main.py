"""项目主启动入口。"""

from __future__ import annotations

import logging

import uvicorn

from learnhub.config import LOG_LEVEL
from learnhub.runtime import build_uvicorn_options, load_runtime_config

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


def main() -> int:
    """启动 HTTP 服务。"""

    config = load_runtime_config()
    logger.info(
        "启动参数: http_workers=%d port=%d reload=%s",
        config.http_workers,
        config.app_port,
        config.uvicorn_reload,
    )

    uvicorn.run(**build_uvicorn_options(config))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
