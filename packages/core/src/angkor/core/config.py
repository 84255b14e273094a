"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、ICS 生成参数、即将到来事件窗口等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("ANGKOR_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "ANGKOR_DB_PATH",
        str(_get_base_dir() / "sqlite" / "angkor.db"),
    )


# ICS 文档 PRODID
ICS_PRODID: str = os.environ.get(
    "ANGKOR_ICS_PRODID",
    "-//Angkor Compliance//Calendar Event//EN",
)

# 未指定组织者时使用的默认身份
DEFAULT_ORGANIZER: str = os.environ.get(
    "ANGKOR_DEFAULT_ORGANIZER",
    "system@angkor-compliance.com",
)

# 即将到来的日历事件默认窗口（天）
UPCOMING_EVENT_DAYS: int = int(os.environ.get("ANGKOR_UPCOMING_EVENT_DAYS", "7"))

# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("ANGKOR_SSE_HEARTBEAT_INTERVAL", "15")
)

# 集合名称
TASKS_COLLECTION = "tasks"
CALENDAR_EVENTS_COLLECTION = "calendar_events"
CALENDAR_SYNC_COLLECTION = "calendar_sync"
NOTIFICATIONS_COLLECTION = "notifications"
COMMUNICATIONS_COLLECTION = "communications"
DOMAIN_EVENTS_COLLECTION = "domain_events"
