"""DomainEvent Payload 子类型

所有领域事件的结构化 payload 定义。
"""

from pydantic import BaseModel, Field

from .enums import Priority


class TaskAssignedPayload(BaseModel):
    """TASK_ASSIGNED 事件 payload"""

    task_id: str
    title: str
    assignee_id: str
    priority: Priority


class TasksBulkAssignedPayload(BaseModel):
    """TASKS_BULK_ASSIGNED 事件 payload"""

    task_ids: list[str]
    assignee_id: str


class CalendarEventCreatedPayload(BaseModel):
    """CALENDAR_EVENT_CREATED 事件 payload"""

    event_id: str
    title: str
    attendees: list[str] = Field(default_factory=list)


class CommunicationCreatedPayload(BaseModel):
    """COMMUNICATION_CREATED 事件 payload"""

    communication_id: str
    subject: str
    mentions: list[str] = Field(default_factory=list)


class TaskOverduePayload(BaseModel):
    """TASK_OVERDUE 事件 payload"""

    task_id: str
    title: str
    assignee_id: str
    days_overdue: int = Field(ge=0)
