"""FastAPI 应用主文件

app 创建 + lifespan 管理：DocumentStore 初始化/关闭 + 渠道组装 + 服务缓存重建 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from angkor.channels import (
    CalendarSyncAdapter,
    ChannelConfig,
    ChannelGateway,
    build_calendar_sync,
    build_channel_gateway,
    load_channel_config,
)
from angkor.core.config import get_db_path
from angkor.core.store import SqliteDocumentStore, create_document_store
from fastapi import FastAPI

from .middleware.error_handlers import register_exception_handlers
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import calendar, communications, health, notifications, reports, tasks
from .services.container import ServiceGroup, create_service_group

log = structlog.get_logger()


async def init_app_state(
    app: FastAPI,
    store: SqliteDocumentStore,
    channels: ChannelGateway,
    calendar_sync: CalendarSyncAdapter,
    channel_config: ChannelConfig | None = None,
) -> ServiceGroup:
    """装配服务并挂到 app.state（lifespan 与测试共用）"""
    services = await create_service_group(store, channels, calendar_sync)
    app.state.store = store
    app.state.services = services
    app.state.channel_config = channel_config
    return services


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化存储与服务，关闭时清理连接"""
    db_path = get_db_path()
    store = await create_document_store(db_path)

    channel_config = load_channel_config()
    channels = build_channel_gateway(channel_config)
    calendar_sync = build_calendar_sync(channel_config)

    services = await init_app_state(app, store, channels, calendar_sync, channel_config)
    log.info(
        "gateway_started",
        db_path=db_path,
        channel_mode=channel_config.mode,
        cached_tasks=len(services.tasks.tasks),
    )

    yield

    # 关闭：清理数据库连接
    if getattr(app.state, "store", None) is not None:
        await app.state.store.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Angkor Compliance Orchestration Gateway",
        version="0.1.0",
        description="任务、日历与通知编排 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    register_exception_handlers(app)

    # 初始化日志
    setup_logging()
    setup_logfire()

    # 注册路由
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(calendar.router, tags=["calendar"])
    app.include_router(notifications.router, tags=["notifications"])
    app.include_router(communications.router, tags=["communications"])
    app.include_router(reports.router, tags=["reports"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
