"""
文件仓库 - FastAPI应用主入口
"""
import asyncio
import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from app.api import auth, categories, files, users
from app.core.config import load_config, settings
from app.core.context import AppContext
from app.core.errors import BadRequestError, RepositoryError
from app.core.logger import setup_logging
from app.core.watcher import ConfigWatcher
from app.services.fs_engine import FileSystem

logger = logging.getLogger("main")


def create_app(ctx: AppContext) -> FastAPI:
    """
    创建FastAPI应用

    Args:
        ctx: 应用上下文，配置热重载时由监听器替换其中的状态
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="多租户文件仓库API",
    )
    app.state.ctx = ctx

    # 配置CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ctx.config.origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Authorization", "Content-Disposition"],
    )

    @app.exception_handler(RepositoryError)
    async def repository_error_handler(request: Request, exc: RepositoryError):
        if exc.status_code >= 500:
            logger.error("%s %s: %s (%s)", request.method, request.url.path, exc.error_code, exc.detail)
        else:
            logger.info("%s %s: %s (%s)", request.method, request.url.path, exc.error_code, exc.detail)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        err = BadRequestError(str(exc.errors()))
        logger.info("%s %s: requisição inválida %s", request.method, request.url.path, err.detail)
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.options("/{path:path}")
    async def preflight(path: str):
        """预检请求"""
        return Response(status_code=200)

    # 注册路由
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(categories.router)
    app.include_router(files.router)

    return app


async def serve() -> None:
    """
    启动服务

    配置监听在整个进程内运行；收到重启信号时按新端口和证书重新启动 HTTP 服务。
    """
    fs = FileSystem(settings.FILES_ROOT)
    ctx = await AppContext.create(load_config(), fs)
    watcher = ConfigWatcher(ctx)
    watcher.start()
    try:
        while True:
            cfg = ctx.config
            server = uvicorn.Server(uvicorn.Config(
                create_app(ctx),
                host="0.0.0.0",
                port=cfg.port,
                ssl_certfile=cfg.cert_file if cfg.tls_enabled else None,
                ssl_keyfile=cfg.key_file if cfg.tls_enabled else None,
                log_config=None,
            ))
            logger.info("Servidor ouvindo na porta %s (%s)", cfg.port, cfg.environment)

            serve_task = asyncio.create_task(server.serve())
            restart_task = asyncio.create_task(ctx.restart.get())
            done, _ = await asyncio.wait({serve_task, restart_task}, return_when=asyncio.FIRST_COMPLETED)

            if restart_task in done:
                logger.warning("Reiniciando servidor")
                server.should_exit = True
                await serve_task
                continue

            restart_task.cancel()
            serve_task.result()
            break
    finally:
        await watcher.stop()
        await ctx.close()


def run() -> None:
    setup_logging()
    asyncio.run(serve())


if __name__ == "__main__":
    run()
