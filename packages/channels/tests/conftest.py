"""Channels 包测试 fixtures"""

from datetime import UTC, datetime

import pytest
from angkor.core.models import Notification, NotificationType, Priority


@pytest.fixture
def sample_notification() -> Notification:
    """标准待投递通知"""
    return Notification(
        notification_id="01JTESTNOTIF00000000000001",
        type=NotificationType.TASK_ASSIGNED,
        title="New Task Assigned",
        message='You have been assigned a new task: "Fire drill"',
        priority=Priority.HIGH,
        target_id="user-1",
        factory_id="factory-a",
        related_task_id="task-1",
        created_at=datetime(2024, 6, 1, 9, 0, tzinfo=UTC),
    )


@pytest.fixture
def clean_channel_env(monkeypatch):
    """清除全部渠道相关环境变量"""
    for var in (
        "ANGKOR_CHANNEL_MODE",
        "ANGKOR_EMAIL_WEBHOOK_URL",
        "ANGKOR_SMS_WEBHOOK_URL",
        "ANGKOR_CHAT_WEBHOOK_URL",
        "ANGKOR_CALENDAR_WEBHOOK_URL",
        "ANGKOR_CHANNEL_API_KEY",
        "ANGKOR_CHANNEL_TIMEOUT_S",
    ):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch
