"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from angkor.core.models import Priority, Task, TaskStatus


@pytest_asyncio.fixture
async def core_db_path(tmp_path: Path) -> Path:
    """核心层临时数据库路径"""
    return tmp_path / "core_test.db"


@pytest_asyncio.fixture
async def core_store(core_db_path: Path) -> AsyncGenerator:
    """核心层已初始化 DocumentStore"""
    from angkor.core.store import create_document_store

    store = await create_document_store(str(core_db_path))
    yield store
    await store.close()


@pytest.fixture
def make_task():
    """构造 Task 的工厂函数（默认租户 factory-a）"""

    def _make(
        task_id: str,
        status: TaskStatus = TaskStatus.PENDING,
        priority: Priority = Priority.MEDIUM,
        factory_id: str = "factory-a",
        created_at: datetime | None = None,
        **kwargs,
    ) -> Task:
        created = created_at or datetime(2024, 6, 1, tzinfo=UTC)
        updated = kwargs.pop("updated_at", created)
        return Task(
            task_id=task_id,
            title=f"任务 {task_id}",
            status=status,
            priority=priority,
            factory_id=factory_id,
            created_at=created,
            updated_at=updated,
            **kwargs,
        )

    return _make
