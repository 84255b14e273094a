"""CalendarEventManager -- 日历事件、ICS 生成与外部日历同步

ics_data 总是由当前调度字段重新生成；同步记录以 (event_id, target_name) 为键，
先写 pending，再按适配器结果写 completed / failed。
"""

from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

import structlog
from angkor.channels import CalendarSyncAdapter
from angkor.core.config import (
    CALENDAR_EVENTS_COLLECTION,
    CALENDAR_SYNC_COLLECTION,
    UPCOMING_EVENT_DAYS,
)
from angkor.core.exceptions import NotFoundError, ValidationError
from angkor.core.ics import build_calendar_document, build_ics
from angkor.core.models import (
    CalendarEvent,
    CalendarEventCreatedPayload,
    CalendarEventDraft,
    CalendarSyncRecord,
    DomainEventType,
    SyncStatus,
    new_id,
    utc_now,
)
from angkor.core.repository import EntityRepository
from angkor.core.store import BatchOperation, DocumentStore
from angkor.core.validation import validate_fields

from .event_bus import DomainEventBus, new_domain_event, write_with_outbox

log = structlog.get_logger()

_IMMUTABLE_FIELDS = frozenset({"event_id", "created_at", "factory_id", "ics_data"})


class CalendarEventManager:
    """日历事件业务服务"""

    def __init__(
        self,
        store: DocumentStore,
        bus: DomainEventBus,
        sync_adapter: CalendarSyncAdapter,
        repository: EntityRepository[CalendarEvent] | None = None,
    ) -> None:
        self._store = store
        self._bus = bus
        self._sync_adapter = sync_adapter
        self.events = repository or EntityRepository(
            CALENDAR_EVENTS_COLLECTION, CalendarEvent, "event_id"
        )

    async def create_calendar_event(
        self,
        fields: CalendarEventDraft | Mapping[str, Any],
        actor_id: str = "",
    ) -> CalendarEvent:
        """创建日历事件并向每位参会人发出 calendar_invite 通知

        Raises:
            ValidationError: 字段缺失或 end 早于 start（未写入）
        """
        draft = validate_fields(CalendarEventDraft, fields)
        now = utc_now()
        event = CalendarEvent(
            event_id=new_id(),
            **draft.model_dump(),
            created_at=now,
            updated_at=now,
        )
        event = event.model_copy(update={"ics_data": build_ics(event)})

        domain_event = new_domain_event(
            DomainEventType.CALENDAR_EVENT_CREATED,
            CalendarEventCreatedPayload(
                event_id=event.event_id,
                title=event.title,
                attendees=event.attendees,
            ),
            factory_id=event.factory_id,
            entity_id=event.event_id,
            actor_id=actor_id,
        )
        await write_with_outbox(
            self._store,
            [
                BatchOperation(
                    collection=CALENDAR_EVENTS_COLLECTION,
                    doc_id=event.event_id,
                    fields=event.model_dump(mode="json"),
                    kind="set",
                )
            ],
            domain_event,
        )
        self.events.put(event)
        log.info(
            "calendar_event_created",
            event_id=event.event_id,
            factory_id=event.factory_id,
            attendee_count=len(event.attendees),
        )

        await self._bus.publish(domain_event)
        return event

    async def update_calendar_event(
        self,
        event_id: str,
        partial: Mapping[str, Any],
    ) -> CalendarEvent:
        """合并部分字段，重新生成 ics_data 并刷新 updated_at

        Raises:
            NotFoundError: 事件不存在
            ValidationError: 字段不合法或试图修改不可变字段
        """
        event = await self.get_calendar_event(event_id)
        partial = dict(partial)
        immutable = _IMMUTABLE_FIELDS.intersection(partial)
        if immutable:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(immutable))}")

        updated = validate_fields(
            CalendarEvent,
            {**event.model_dump(), **partial, "updated_at": utc_now()},
        )
        updated = updated.model_copy(update={"ics_data": build_ics(updated)})

        before = event.model_dump(mode="json")
        changes = {k: v for k, v in updated.model_dump(mode="json").items() if before.get(k) != v}
        data = await self._store.update_document(CALENDAR_EVENTS_COLLECTION, event_id, changes)
        saved = CalendarEvent.model_validate(data)
        # 并发更新按字段合并后，ics_data 需按合并结果重新生成
        ics_data = build_ics(saved)
        if ics_data != saved.ics_data:
            data = await self._store.update_document(
                CALENDAR_EVENTS_COLLECTION, event_id, {"ics_data": ics_data}
            )
            saved = CalendarEvent.model_validate(data)
        self.events.put(saved)
        log.info("calendar_event_updated", event_id=event_id, fields=sorted(changes))
        return saved

    async def sync_with_external_calendar(
        self,
        event_id: str,
        target_name: str,
    ) -> CalendarSyncRecord:
        """推送事件到外部日历

        适配器确认 -> completed；未确认或抛出异常 -> failed（记录错误，不向上传播）。

        Raises:
            NotFoundError: 事件不存在
            ValidationError: 目标名称为空
        """
        event = await self.get_calendar_event(event_id)
        if not target_name:
            raise ValidationError("target_name is required")

        record = CalendarSyncRecord(
            sync_id=CalendarSyncRecord.make_id(event_id, target_name),
            event_id=event_id,
            target_name=target_name,
            status=SyncStatus.PENDING,
            last_sync_attempt=utc_now(),
            ics_data=event.ics_data,
        )
        await self._store.set_document(
            CALENDAR_SYNC_COLLECTION, record.sync_id, record.model_dump(mode="json")
        )

        error = ""
        try:
            status = await self._sync_adapter.push_event(target_name, event.ics_data)
        except Exception as e:
            status = SyncStatus.FAILED
            error = f"{type(e).__name__}: {e}"
            log.warning(
                "calendar_sync_failed",
                event_id=event_id,
                target_name=target_name,
                error=error,
            )
        if status != SyncStatus.COMPLETED:
            status = SyncStatus.FAILED
            error = error or "sync not acknowledged"

        data = await self._store.update_document(
            CALENDAR_SYNC_COLLECTION,
            record.sync_id,
            {
                "status": status.value,
                "last_sync_attempt": utc_now().isoformat(),
                "error": error,
            },
        )
        result = CalendarSyncRecord.model_validate(data)
        log.info(
            "calendar_sync_recorded",
            event_id=event_id,
            target_name=target_name,
            status=result.status.value,
        )
        return result

    async def get_sync_record(self, event_id: str, target_name: str) -> CalendarSyncRecord:
        sync_id = CalendarSyncRecord.make_id(event_id, target_name)
        data = await self._store.get_document(CALENDAR_SYNC_COLLECTION, sync_id)
        if data is None:
            raise NotFoundError("calendar sync record", sync_id)
        return CalendarSyncRecord.model_validate(data)

    async def get_calendar_event(self, event_id: str) -> CalendarEvent:
        event = self.events.get(event_id)
        if event is None:
            raise NotFoundError("calendar event", event_id)
        return event

    async def get_upcoming_events(
        self,
        factory_id: str,
        days: int = UPCOMING_EVENT_DAYS,
        now: datetime | None = None,
    ) -> list[CalendarEvent]:
        """[now, now + days] 内开始的事件，按开始时间升序"""
        now = now or utc_now()
        horizon = now + timedelta(days=days)
        upcoming = [e for e in self.events.values(factory_id) if now <= e.start <= horizon]
        return sorted(upcoming, key=lambda e: e.start)

    async def export_calendar(self, factory_id: str) -> str:
        """导出租户全部事件为一个多 VEVENT 的 ICS 文档"""
        events = sorted(self.events.values(factory_id), key=lambda e: e.start)
        return build_calendar_document(events)
