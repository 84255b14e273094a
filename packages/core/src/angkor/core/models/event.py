"""DomainEvent（outbox 记录）Domain Model

主写入与领域事件在同一批次中原子落盘，随后由事件总线分发；
分发结果只回写 status / dispatched_at，事件内容不再修改。
"""

from typing import Any

from pydantic import BaseModel, Field

from .common import UTCDateTime
from .enums import DomainEventType, OutboxStatus


class DomainEvent(BaseModel):
    """DomainEvent 数据模型"""

    domain_event_id: str = Field(description="唯一标识，ULID 格式，时间有序")
    type: DomainEventType = Field(description="事件类型")
    ts: UTCDateTime = Field(description="事件时间戳")
    factory_id: str = Field(default="", description="租户 ID")
    entity_id: str = Field(default="", description="触发事件的主实体 ID")
    actor_id: str = Field(default="", description="操作者 ID")
    payload: dict[str, Any] = Field(default_factory=dict, description="结构化 payload")
    status: OutboxStatus = Field(default=OutboxStatus.PENDING)
    dispatched_at: UTCDateTime | None = Field(default=None)
