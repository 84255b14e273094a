"""apps/gateway 测试配置 -- 服务组 + FastAPI app + httpx AsyncClient"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from angkor.channels import ChannelGateway, EchoCalendarSync, LoggingChannelAdapter
from angkor.core.models import Channel, DeliveryReceipt, Notification
from angkor.core.store import create_document_store
from httpx import ASGITransport, AsyncClient

FACTORY_A = "factory-a"
FACTORY_B = "factory-b"


class RecordingAdapter:
    """记录调用的渠道适配器，可配置为抛出异常或返回失败回执"""

    def __init__(self, channel: Channel, error: Exception | None = None, success: bool = True):
        self.channel = channel
        self.error = error
        self.success = success
        self.calls: list[Notification] = []

    async def send(self, notification: Notification) -> DeliveryReceipt:
        self.calls.append(notification)
        if self.error is not None:
            raise self.error
        return DeliveryReceipt(
            channel=self.channel,
            success=self.success,
            detail="ok" if self.success else "rejected",
        )


def session_headers(user_id: str = "user-1", factory_id: str = FACTORY_A) -> dict[str, str]:
    return {"X-User-Id": user_id, "X-Factory-Id": factory_id}


@pytest.fixture
def headers():
    """构造会话请求头：headers(user_id, factory_id)"""
    return session_headers


@pytest.fixture
def make_adapter():
    """构造 RecordingAdapter：make_adapter(channel, error=None, success=True)"""
    return RecordingAdapter


@pytest.fixture
def logging_channels() -> ChannelGateway:
    """全部渠道模拟投递"""
    return ChannelGateway({channel: LoggingChannelAdapter(channel) for channel in Channel})


@pytest_asyncio.fixture
async def store(tmp_path: Path) -> AsyncGenerator:
    """Gateway 临时 DocumentStore"""
    document_store = await create_document_store(str(tmp_path / "sqlite" / "test.db"))
    yield document_store
    await document_store.close()


@pytest_asyncio.fixture
async def services(store, logging_channels):
    """已重建缓存的服务组"""
    from angkor.gateway.services.container import create_service_group

    return await create_service_group(store, logging_channels, EchoCalendarSync())


@pytest_asyncio.fixture
async def app(tmp_path: Path, store, logging_channels):
    """创建测试用 FastAPI app，手动初始化 lifespan 状态"""
    os.environ["ANGKOR_DB_PATH"] = str(tmp_path / "sqlite" / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from angkor.channels import ChannelConfig
    from angkor.gateway.main import create_app, init_app_state

    application = create_app()
    await init_app_state(
        application, store, logging_channels, EchoCalendarSync(), ChannelConfig()
    )
    yield application

    for key in ["ANGKOR_DB_PATH", "LOGFIRE_SEND_TO_LOGFIRE"]:
        os.environ.pop(key, None)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """默认以 factory-a 的 user-1 身份发起请求"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers=session_headers(),
    ) as ac:
        yield ac
