"""Notification Domain Model

通知是扇出单元而不是渠道消息：一条通知按渠道选择策略投递到多个渠道，
每次渠道调用都会累加 delivery_attempts。
"""

from pydantic import BaseModel, ConfigDict, Field

from .common import UTCDateTime
from .enums import Channel, NotificationStatus, NotificationType, Priority, TargetType


class DeliveryReceipt(BaseModel):
    """单个渠道的投递回执"""

    channel: Channel
    success: bool
    detail: str = Field(default="", description="渠道返回信息或错误描述")
    duration_ms: int = Field(default=0)


class NotificationDraft(BaseModel):
    """创建通知的输入字段"""

    model_config = ConfigDict(str_strip_whitespace=True)

    type: NotificationType
    title: str = Field(min_length=1)
    message: str = Field(default="")
    priority: Priority = Field(default=Priority.MEDIUM)
    target_type: TargetType = Field(default=TargetType.USER)
    target_id: str = Field(min_length=1)
    factory_id: str = Field(default="")
    related_task_id: str | None = Field(default=None)
    related_task_ids: list[str] = Field(default_factory=list)
    related_event_id: str | None = Field(default=None)
    related_communication_id: str | None = Field(default=None)


class Notification(BaseModel):
    """Notification 数据模型

    status: pending -> sent|failed；sent -> read（显式确认）。
    终态后不会自动重投。
    """

    notification_id: str = Field(description="唯一标识，ULID 格式")
    type: NotificationType
    title: str
    message: str = Field(default="")
    priority: Priority = Field(default=Priority.MEDIUM)
    target_type: TargetType = Field(default=TargetType.USER)
    target_id: str
    factory_id: str = Field(default="")
    related_task_id: str | None = Field(default=None)
    related_task_ids: list[str] = Field(default_factory=list)
    related_event_id: str | None = Field(default=None)
    related_communication_id: str | None = Field(default=None)
    status: NotificationStatus = Field(default=NotificationStatus.PENDING)
    delivery_attempts: int = Field(default=0, ge=0)
    deliveries: list[DeliveryReceipt] = Field(default_factory=list)
    created_at: UTCDateTime
    sent_at: UTCDateTime | None = Field(default=None)
    read_at: UTCDateTime | None = Field(default=None)
