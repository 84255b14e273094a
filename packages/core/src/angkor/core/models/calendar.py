"""CalendarEvent Domain Model

ics_data 是派生字段：每次调度相关字段变化时由 CalendarEventManager 重新生成，
不允许手工编辑。
"""

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .common import UTCDateTime
from .enums import SyncStatus


class CalendarEventDraft(BaseModel):
    """创建日历事件的输入字段"""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1)
    description: str = Field(default="")
    location: str = Field(default="")
    organizer: str = Field(default="", description="组织者身份（邮箱）")
    start: UTCDateTime
    end: UTCDateTime
    attendees: list[str] = Field(default_factory=list, description="参会人 ID 列表")
    reminders: list[int] = Field(default_factory=list, description="提前提醒分钟数")
    factory_id: str = Field(default="")

    @model_validator(mode="after")
    def _end_after_start(self) -> Self:
        if self.end < self.start:
            raise ValueError("event end must not precede its start")
        return self


class CalendarEvent(BaseModel):
    """CalendarEvent 数据模型"""

    event_id: str = Field(description="唯一标识，ULID 格式")
    title: str
    description: str = Field(default="")
    location: str = Field(default="")
    organizer: str = Field(default="")
    start: UTCDateTime
    end: UTCDateTime
    attendees: list[str] = Field(default_factory=list)
    reminders: list[int] = Field(default_factory=list)
    factory_id: str = Field(default="")
    ics_data: str = Field(default="", description="派生的日历交换格式文本")
    created_at: UTCDateTime
    updated_at: UTCDateTime

    @model_validator(mode="after")
    def _end_after_start(self) -> Self:
        if self.end < self.start:
            raise ValueError("event end must not precede its start")
        return self


class CalendarSyncRecord(BaseModel):
    """外部日历同步记录 -- 以 (event_id, target_name) 为键"""

    sync_id: str = Field(description="'{event_id}:{target_name}'")
    event_id: str
    target_name: str = Field(description="外部日历目标名称，如 google/outlook/ics")
    status: SyncStatus = Field(default=SyncStatus.PENDING)
    last_sync_attempt: UTCDateTime
    ics_data: str = Field(default="")
    error: str = Field(default="")

    @staticmethod
    def make_id(event_id: str, target_name: str) -> str:
        return f"{event_id}:{target_name}"
