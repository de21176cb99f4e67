"""
FastAPI 应用入口点。
"""

from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse
from loguru import logger

from src.certd.api.router import router as ca_router
from src.certd.ca import CA
from src.certd.config import Config, get_config

STATIC_DIR = Path(__file__).parent / "static"


def create_app(ca: CA, settings: Optional[Config] = None, log: Any = logger) -> FastAPI:
    """
    构造签发服务。认证用户名/密码在此时从配置（环境变量）读取一次。
    CA 在应用生命周期内只读，各请求并发访问无需加锁。
    """
    settings = settings or get_config()

    app = FastAPI(
        title="certd Certificate Authority",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.ca = ca
    app.state.settings = settings
    app.state.log = log

    @app.middleware("http")
    async def no_cache(request: Request, call_next):
        client = request.client.host if request.client else "-"
        log.info(f"{client} - {request.url.path}")
        response = await call_next(request)
        response.headers["Cache-Control"] = "private, max-age=0"
        response.headers["Expires"] = "0"
        return response

    app.include_router(ca_router)

    @app.get("/")
    async def index():
        return FileResponse(path=STATIC_DIR / "index.html", media_type="text/html")

    return app
