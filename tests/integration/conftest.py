"""集成测试共享 fixture

通过 lifespan 完整启动应用（环境变量配置 -> 存储 -> 渠道 -> 服务缓存重建）。
"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

_ENV_KEYS = ["ANGKOR_DB_PATH", "ANGKOR_CHANNEL_MODE", "LOGFIRE_SEND_TO_LOGFIRE"]


@pytest_asyncio.fixture
async def integration_db_path(tmp_path: Path) -> AsyncGenerator[str, None]:
    """为 lifespan 配置临时数据库路径"""
    db_path = str(tmp_path / "data" / "angkor.db")
    os.environ["ANGKOR_DB_PATH"] = db_path
    os.environ["ANGKOR_CHANNEL_MODE"] = "log"
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"
    yield db_path
    for key in _ENV_KEYS:
        os.environ.pop(key, None)


@pytest_asyncio.fixture
async def integration_app(integration_db_path: str):
    """经 lifespan 启动的 FastAPI app"""
    from angkor.gateway.main import create_app, lifespan

    app = create_app()
    async with lifespan(app):
        yield app


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
        headers={"X-User-Id": "manager-1", "X-Factory-Id": "factory-pp"},
    ) as ac:
        yield ac
