"""枚举定义 -- 任务/通知状态机、优先级、通知类型、渠道、周期频率

包含 TaskStatus / NotificationStatus 两个状态机的 VALID_TRANSITIONS 合法流转映射、
TERMINAL_STATES 终态集合，以及驱动渠道选择的闭合枚举。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态机"""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED},
    TaskStatus.IN_PROGRESS: {TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    # 终态不可再流转
    TaskStatus.COMPLETED: set(),
    TaskStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[TaskStatus] = {
    TaskStatus.COMPLETED,
    TaskStatus.CANCELLED,
}


class Priority(StrEnum):
    """优先级（任务与通知共用）"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class NotificationType(StrEnum):
    """通知类型"""

    TASK_ASSIGNED = "task_assigned"
    BULK_TASK_ASSIGNED = "bulk_task_assigned"
    CALENDAR_INVITE = "calendar_invite"
    MENTION = "mention"
    GRIEVANCE_UPDATE = "grievance_update"
    CRITICAL_ALERT = "critical_alert"
    TASK_OVERDUE = "task_overdue"
    SYSTEM = "system"


class NotificationStatus(StrEnum):
    """Notification 状态机"""

    PENDING = "pending"
    SENT = "sent"
    READ = "read"
    FAILED = "failed"


NOTIFICATION_TRANSITIONS: dict[NotificationStatus, set[NotificationStatus]] = {
    NotificationStatus.PENDING: {NotificationStatus.SENT, NotificationStatus.FAILED},
    NotificationStatus.SENT: {NotificationStatus.READ},
    NotificationStatus.READ: set(),
    # 失败后不自动重投
    NotificationStatus.FAILED: set(),
}


class TargetType(StrEnum):
    """通知目标类型"""

    USER = "user"


class Channel(StrEnum):
    """通知投递渠道"""

    IN_APP = "in_app"
    EMAIL = "email"
    SMS = "sms"
    CHAT = "chat"


class Frequency(StrEnum):
    """周期任务频率"""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class SyncStatus(StrEnum):
    """外部日历同步状态"""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class DomainEventType(StrEnum):
    """领域事件类型（outbox 记录）"""

    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASKS_BULK_ASSIGNED = "TASKS_BULK_ASSIGNED"
    CALENDAR_EVENT_CREATED = "CALENDAR_EVENT_CREATED"
    COMMUNICATION_CREATED = "COMMUNICATION_CREATED"
    TASK_OVERDUE = "TASK_OVERDUE"


class OutboxStatus(StrEnum):
    """领域事件分发状态"""

    PENDING = "pending"
    DISPATCHED = "dispatched"
    FAILED = "failed"


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证任务状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed


def validate_notification_transition(
    from_status: NotificationStatus,
    to_status: NotificationStatus,
) -> bool:
    """验证通知状态流转是否合法"""
    return to_status in NOTIFICATION_TRANSITIONS.get(from_status, set())
