"""Angkor Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .calendar import CalendarEvent, CalendarEventDraft, CalendarSyncRecord
from .common import UTCDateTime, new_id, utc_now
from .communication import Communication, CommunicationDraft, Reply, ReplyDraft
from .enums import (
    NOTIFICATION_TRANSITIONS,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    Channel,
    DomainEventType,
    Frequency,
    NotificationStatus,
    NotificationType,
    OutboxStatus,
    Priority,
    SyncStatus,
    TargetType,
    TaskStatus,
    validate_notification_transition,
    validate_transition,
)
from .event import DomainEvent
from .notification import DeliveryReceipt, Notification, NotificationDraft
from .payloads import (
    CalendarEventCreatedPayload,
    CommunicationCreatedPayload,
    TaskAssignedPayload,
    TaskOverduePayload,
    TasksBulkAssignedPayload,
)
from .report import DateRange, TaskReport, TaskReportSummary
from .session import SessionContext
from .task import RecurrenceSchedule, Task, TaskComment, TaskDraft, TaskTemplate

__all__ = [
    # 枚举
    "TaskStatus",
    "Priority",
    "NotificationType",
    "NotificationStatus",
    "TargetType",
    "Channel",
    "Frequency",
    "SyncStatus",
    "DomainEventType",
    "OutboxStatus",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "NOTIFICATION_TRANSITIONS",
    "validate_transition",
    "validate_notification_transition",
    # 公共
    "UTCDateTime",
    "new_id",
    "utc_now",
    # Task
    "Task",
    "TaskDraft",
    "TaskComment",
    "TaskTemplate",
    "RecurrenceSchedule",
    # Calendar
    "CalendarEvent",
    "CalendarEventDraft",
    "CalendarSyncRecord",
    # Notification
    "Notification",
    "NotificationDraft",
    "DeliveryReceipt",
    # Communication
    "Communication",
    "CommunicationDraft",
    "Reply",
    "ReplyDraft",
    # DomainEvent
    "DomainEvent",
    "TaskAssignedPayload",
    "TaskOverduePayload",
    "TasksBulkAssignedPayload",
    "CalendarEventCreatedPayload",
    "CommunicationCreatedPayload",
    # Report
    "DateRange",
    "TaskReport",
    "TaskReportSummary",
    # Session
    "SessionContext",
]
