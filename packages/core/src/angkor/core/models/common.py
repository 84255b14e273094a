"""模型公共类型

所有时间戳统一为带时区的 UTC datetime；naive 输入按 UTC 解释。
"""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator
from ulid import ULID


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]


def new_id() -> str:
    """生成 ULID 字符串 ID（时间有序）"""
    return str(ULID())


def utc_now() -> datetime:
    return datetime.now(UTC)
