"""DomainEventBus + NotificationFanout 测试

测试内容：
1. outbox 记录在分发后回写为 dispatched / failed
2. 处理器失败不影响其他处理器
3. 单个收件人失败不影响其余收件人
4. 重启后补发 pending outbox 记录
"""

from angkor.core.models import (
    DomainEventType,
    NotificationType,
    OutboxStatus,
    Priority,
    TaskAssignedPayload,
)
from angkor.core.store import BatchOperation
from angkor.gateway.services.container import create_service_group
from angkor.gateway.services.event_bus import (
    DomainEventBus,
    new_domain_event,
    outbox_operation,
    write_with_outbox,
)


def _assigned_event(assignee: str = "user-2"):
    return new_domain_event(
        DomainEventType.TASK_ASSIGNED,
        TaskAssignedPayload(
            task_id="task-1", title="Fire drill", assignee_id=assignee, priority=Priority.MEDIUM
        ),
        factory_id="factory-a",
        entity_id="task-1",
        actor_id="user-1",
    )


class TestOutbox:
    async def test_publish_marks_dispatched(self, store):
        bus = DomainEventBus(store)
        received = []

        async def handler(event):
            received.append(event.domain_event_id)

        bus.subscribe(DomainEventType.TASK_ASSIGNED, handler)
        event = _assigned_event()
        await write_with_outbox(store, [], event)

        published = await bus.publish(event)

        assert received == [event.domain_event_id]
        assert published.status == OutboxStatus.DISPATCHED
        assert published.dispatched_at is not None
        stored = await store.get_document("domain_events", event.domain_event_id)
        assert stored["status"] == "dispatched"
        assert event.domain_event_id not in bus.events

    async def test_handler_failure_marks_failed_and_continues(self, store):
        bus = DomainEventBus(store)
        calls = []

        async def broken(event):
            raise RuntimeError("handler down")

        async def healthy(event):
            calls.append(event.domain_event_id)

        bus.subscribe(DomainEventType.TASK_ASSIGNED, broken)
        bus.subscribe(DomainEventType.TASK_ASSIGNED, healthy)
        event = _assigned_event()
        await write_with_outbox(store, [], event)

        published = await bus.publish(event)

        assert calls == [event.domain_event_id]
        assert published.status == OutboxStatus.FAILED
        assert bus.events.get(event.domain_event_id).status == OutboxStatus.FAILED

    async def test_write_without_batch_support(self, store, monkeypatch):
        monkeypatch.setattr(store, "supports_batch_write", False)
        event = _assigned_event()
        await write_with_outbox(
            store,
            [BatchOperation(collection="tasks", doc_id="task-1", fields={"x": 1}, kind="set")],
            event,
        )
        assert await store.get_document("tasks", "task-1") == {"x": 1}
        assert (await store.get_document("domain_events", event.domain_event_id))[
            "status"
        ] == "pending"


class TestFanout:
    async def test_partial_recipient_failure(self, services, monkeypatch):
        original = services.notifications.create_notification

        async def flaky(fields):
            if fields.target_id == "user-bad":
                raise RuntimeError("write failed")
            return await original(fields)

        monkeypatch.setattr(services.notifications, "create_notification", flaky)

        event = await services.calendar.create_calendar_event(
            {
                "title": "Committee meeting",
                "start": "2030-01-01T09:00:00Z",
                "end": "2030-01-01T10:00:00Z",
                "attendees": ["user-2", "user-bad", "user-3"],
                "factory_id": "factory-a",
            }
        )

        invited = sorted(n.target_id for n in services.notifications.notifications.values())
        assert invited == ["user-2", "user-3"]
        domain_events = [e for e in services.bus.events.values() if e.entity_id == event.event_id]
        assert domain_events[0].status == OutboxStatus.FAILED
        # 主写入不受通知失败影响
        assert (await services.calendar.get_calendar_event(event.event_id)).title == (
            "Committee meeting"
        )


class TestRedispatch:
    async def test_pending_events_redispatched_on_startup(self, store, logging_channels):
        """进程在提交 outbox 记录后、分发前退出 -> 重启时补发"""
        from angkor.channels import EchoCalendarSync

        event = _assigned_event("user-7")
        await store.batch_write([outbox_operation(event)])

        services = await create_service_group(store, logging_channels, EchoCalendarSync())

        notifications = list(services.notifications.notifications.values())
        assert len(notifications) == 1
        assert notifications[0].target_id == "user-7"
        assert notifications[0].type == NotificationType.TASK_ASSIGNED
        stored = await store.get_document("domain_events", event.domain_event_id)
        assert stored["status"] == "dispatched"

        # 已分发的事件在下一次启动时不会重复通知
        restarted = await create_service_group(store, logging_channels, EchoCalendarSync())
        assert len(restarted.notifications.notifications) == 1

    async def test_rebuild_caches_only_undispatched(self, store):
        """重建时只加载 pending / failed 记录"""
        bus = DomainEventBus(store)
        dispatched, failed, pending = _assigned_event(), _assigned_event(), _assigned_event()
        for event in (dispatched, failed, pending):
            await store.batch_write([outbox_operation(event)])
        await store.update_document(
            "domain_events", dispatched.domain_event_id, {"status": "dispatched"}
        )
        await store.update_document("domain_events", failed.domain_event_id, {"status": "failed"})

        assert await bus.events.load(store) == 2
        assert dispatched.domain_event_id not in bus.events
        assert bus.events.get(failed.domain_event_id).status == OutboxStatus.FAILED
        assert bus.events.get(pending.domain_event_id).status == OutboxStatus.PENDING
        assert len(await store.get_collection("domain_events")) == 3
