"""FastAPI 应用主文件

app 创建 + lifespan 管理：Record Store / Object Store / Video Source 初始化与关闭 + 路由注册。
"""

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from chatrelay.core.config import (
    IngestLimits,
    get_admin_key,
    get_cors_origins,
    load_ingest_limits,
    load_store_config,
)
from chatrelay.core.ingest import MessageIngestor
from chatrelay.core.media import MediaResolver
from chatrelay.core.store import MessageStore, create_message_store
from chatrelay.media import (
    MediaConfig,
    ObjectStore,
    VideoSource,
    create_object_store,
    create_video_source,
    load_media_config,
)
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .deps import AdminKeyGuard
from .errors import register_error_handlers
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .routes import health, messages, upload, video
from .services.message_service import MessageService
from .services.video_intake import VideoIntake

log = structlog.get_logger()

DEFAULT_PORT = 3000


def init_app_state(
    app: FastAPI,
    store: MessageStore,
    object_store: ObjectStore,
    video_source: VideoSource,
    media_config: MediaConfig | None = None,
    ingest_limits: IngestLimits | None = None,
    admin_key: str | None = None,
) -> None:
    """组装服务并挂到 app.state（lifespan 与测试共用）"""
    media_config = media_config or MediaConfig()
    ingest_limits = ingest_limits or IngestLimits()

    ingestor = MessageIngestor(
        store,
        limits=ingest_limits,
        resolver=MediaResolver(ingest_limits.inline_media_max_bytes),
    )

    app.state.message_store = store
    app.state.object_store = object_store
    app.state.video_source = video_source
    app.state.media_config = media_config
    app.state.message_service = MessageService(store, ingestor)
    app.state.video_intake = VideoIntake(
        ingestor,
        video_source,
        object_store,
        allowed_hosts=media_config.video_hosts,
        timeout_s=media_config.video_intake_timeout_s,
        max_bytes=media_config.upload_max_bytes,
    )
    app.state.clear_guard = AdminKeyGuard(admin_key)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化各协作方，关闭时释放连接"""
    store_config = load_store_config()
    store = await create_message_store(store_config)

    media_config = load_media_config()
    object_store = create_object_store(media_config)
    video_source = create_video_source(media_config)

    init_app_state(
        app,
        store,
        object_store,
        video_source,
        media_config=media_config,
        ingest_limits=load_ingest_limits(),
        admin_key=get_admin_key(),
    )
    log.info(
        "gateway_started",
        store_backend=store_config.backend,
        object_store=media_config.object_store,
        admin_key_enabled=app.state.clear_guard.enabled,
    )

    try:
        yield
    finally:
        await video_source.close()
        await object_store.close()
        await store.close()
        log.info("gateway_stopped")


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="ChatRelay Gateway",
        version="0.1.0",
        description="ChatRelay 消息中继 API",
        lifespan=lifespan,
    )

    app.add_middleware(LoggingMiddleware)
    # 浏览器与扩展客户端跨域访问；最后注册，位于最外层
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # 初始化日志
    log_config = setup_logging()
    setup_logfire(app, log_config)

    register_error_handlers(app)

    app.include_router(messages.router, tags=["messages"])
    app.include_router(upload.router, tags=["upload"])
    app.include_router(video.router, tags=["video"])
    app.include_router(health.router, tags=["health"])

    # local Object Store 上传的文件通过 /media 对外提供
    media_config = load_media_config()
    if media_config.object_store == "local":
        app.mount(
            "/media",
            StaticFiles(directory=media_config.media_dir, check_dir=False),
            name="media",
        )

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()


def run() -> None:
    """命令行入口：uvicorn 启动，端口取 PORT 环境变量"""
    import uvicorn

    uvicorn.run(
        "chatrelay.gateway.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", DEFAULT_PORT)),
    )
