"""NotificationFanout -- 领域事件 -> 通知

每个收件人单独 try/except：一个收件人的通知写入失败不影响其余收件人，
全部处理完后如有失败再抛出，由事件总线把 outbox 记录标记为 failed。
"""

import structlog
from angkor.core.exceptions import OrchestrationError
from angkor.core.models import (
    CalendarEventCreatedPayload,
    CommunicationCreatedPayload,
    DomainEvent,
    DomainEventType,
    NotificationDraft,
    NotificationType,
    Priority,
    TaskAssignedPayload,
    TaskOverduePayload,
    TasksBulkAssignedPayload,
)

from .event_bus import DomainEventBus
from .notification_service import NotificationDispatcher

log = structlog.get_logger()


class NotificationFanout:
    """把领域事件展开为通知"""

    def __init__(self, dispatcher: NotificationDispatcher) -> None:
        self._dispatcher = dispatcher

    def register(self, bus: DomainEventBus) -> None:
        bus.subscribe(DomainEventType.TASK_ASSIGNED, self.on_task_assigned)
        bus.subscribe(DomainEventType.TASKS_BULK_ASSIGNED, self.on_tasks_bulk_assigned)
        bus.subscribe(DomainEventType.CALENDAR_EVENT_CREATED, self.on_calendar_event_created)
        bus.subscribe(DomainEventType.COMMUNICATION_CREATED, self.on_communication_created)
        bus.subscribe(DomainEventType.TASK_OVERDUE, self.on_task_overdue)

    async def on_task_assigned(self, event: DomainEvent) -> None:
        payload = TaskAssignedPayload.model_validate(event.payload)
        await self._notify_each(
            event,
            [payload.assignee_id],
            lambda target_id: NotificationDraft(
                type=NotificationType.TASK_ASSIGNED,
                title="New Task Assigned",
                message=f"You have been assigned a new task: {payload.title}",
                priority=Priority.HIGH if payload.priority == Priority.HIGH else Priority.MEDIUM,
                target_id=target_id,
                factory_id=event.factory_id,
                related_task_id=payload.task_id,
            ),
        )

    async def on_tasks_bulk_assigned(self, event: DomainEvent) -> None:
        payload = TasksBulkAssignedPayload.model_validate(event.payload)
        await self._notify_each(
            event,
            [payload.assignee_id],
            lambda target_id: NotificationDraft(
                type=NotificationType.BULK_TASK_ASSIGNED,
                title="Multiple Tasks Assigned",
                message=f"You have been assigned {len(payload.task_ids)} new tasks",
                priority=Priority.MEDIUM,
                target_id=target_id,
                factory_id=event.factory_id,
                related_task_ids=payload.task_ids,
            ),
        )

    async def on_calendar_event_created(self, event: DomainEvent) -> None:
        payload = CalendarEventCreatedPayload.model_validate(event.payload)
        await self._notify_each(
            event,
            payload.attendees,
            lambda target_id: NotificationDraft(
                type=NotificationType.CALENDAR_INVITE,
                title="Calendar Invitation",
                message=f"You have been invited to: {payload.title}",
                priority=Priority.MEDIUM,
                target_id=target_id,
                factory_id=event.factory_id,
                related_event_id=payload.event_id,
            ),
        )

    async def on_communication_created(self, event: DomainEvent) -> None:
        payload = CommunicationCreatedPayload.model_validate(event.payload)
        await self._notify_each(
            event,
            payload.mentions,
            lambda target_id: NotificationDraft(
                type=NotificationType.MENTION,
                title="You were mentioned",
                message=f"You were mentioned in a communication about {payload.subject}",
                priority=Priority.MEDIUM,
                target_id=target_id,
                factory_id=event.factory_id,
                related_communication_id=payload.communication_id,
            ),
        )

    async def on_task_overdue(self, event: DomainEvent) -> None:
        payload = TaskOverduePayload.model_validate(event.payload)
        plural = "" if payload.days_overdue == 1 else "s"
        await self._notify_each(
            event,
            [payload.assignee_id],
            lambda target_id: NotificationDraft(
                type=NotificationType.TASK_OVERDUE,
                title="Task Overdue",
                message=f"{payload.title} is {payload.days_overdue} day{plural} overdue",
                priority=Priority.HIGH,
                target_id=target_id,
                factory_id=event.factory_id,
                related_task_id=payload.task_id,
            ),
        )

    async def _notify_each(self, event: DomainEvent, target_ids: list[str], build) -> None:
        failures = 0
        for target_id in target_ids:
            try:
                await self._dispatcher.create_notification(build(target_id))
            except Exception as e:
                failures += 1
                log.error(
                    "notification_fanout_failed",
                    domain_event_id=event.domain_event_id,
                    event_type=event.type.value,
                    target_id=target_id,
                    error_type=type(e).__name__,
                    error=str(e),
                )
        if failures:
            raise OrchestrationError(
                f"{failures} of {len(target_ids)} notifications failed for "
                f"{event.type.value} {event.domain_event_id}",
                recoverable=True,
            )
