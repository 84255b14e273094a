"""DomainEventBus -- outbox 领域事件分发

写入侧把主文档与 DomainEvent 放进同一批次原子落盘（write_with_outbox），
提交成功后调用 publish()：依次执行订阅的处理器，再把 outbox 记录回写为
dispatched / failed。处理器失败只记录日志，不影响已提交的主写入。
"""

from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from angkor.core.config import DOMAIN_EVENTS_COLLECTION
from angkor.core.models import DomainEvent, DomainEventType, OutboxStatus, new_id, utc_now
from angkor.core.repository import EntityRepository
from angkor.core.store import BatchOperation, DocumentStore
from pydantic import BaseModel

log = structlog.get_logger()

EventHandler = Callable[[DomainEvent], Awaitable[None]]


def supports_batch(store: DocumentStore) -> bool:
    """存储是否提供原子批量写入"""
    return bool(getattr(store, "supports_batch_write", False))


def new_domain_event(
    event_type: DomainEventType,
    payload: BaseModel,
    factory_id: str = "",
    entity_id: str = "",
    actor_id: str = "",
) -> DomainEvent:
    return DomainEvent(
        domain_event_id=new_id(),
        type=event_type,
        ts=utc_now(),
        factory_id=factory_id,
        entity_id=entity_id,
        actor_id=actor_id,
        payload=payload.model_dump(mode="json"),
    )


def outbox_operation(event: DomainEvent) -> BatchOperation:
    return BatchOperation(
        collection=DOMAIN_EVENTS_COLLECTION,
        doc_id=event.domain_event_id,
        fields=event.model_dump(mode="json"),
        kind="set",
    )


async def write_with_outbox(
    store: DocumentStore,
    operations: list[BatchOperation],
    event: DomainEvent,
) -> None:
    """主写入 + outbox 记录

    存储支持批量写入时两者在同一批次原子提交；否则按序单文档写入，
    outbox 记录最后落盘（主写入失败时不会留下孤立事件）。

    Raises:
        BatchWriteError: 批次未生效
    """
    operations = [*operations, outbox_operation(event)]
    if supports_batch(store):
        await store.batch_write(operations)
        return

    for op in operations:
        if op.kind == "set":
            await store.set_document(op.collection, op.doc_id, op.fields)
        else:
            await store.update_document(op.collection, op.doc_id, op.fields)


class DomainEventBus:
    """进程内领域事件总线

    处理器按注册顺序串行执行；同一事件的多个处理器互不影响。
    events 只缓存未分发成功的 outbox 记录（pending / failed），dispatched 记录只留在存储中。
    """

    def __init__(
        self,
        store: DocumentStore,
        repository: EntityRepository[DomainEvent] | None = None,
    ) -> None:
        self._store = store
        self.events = repository or EntityRepository(
            DOMAIN_EVENTS_COLLECTION,
            DomainEvent,
            "domain_event_id",
            keep=lambda event: event.status != OutboxStatus.DISPATCHED,
        )
        self._handlers: dict[DomainEventType, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: DomainEventType, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    async def publish(self, event: DomainEvent) -> DomainEvent:
        """分发已落盘的领域事件并回写 outbox 状态

        Returns:
            回写状态后的 DomainEvent
        """
        self.events.put(event)
        failed = False
        for handler in self._handlers.get(event.type, []):
            try:
                await handler(event)
            except Exception as e:
                failed = True
                log.error(
                    "domain_event_handler_failed",
                    domain_event_id=event.domain_event_id,
                    event_type=event.type.value,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error_type=type(e).__name__,
                    error=str(e),
                )

        status = OutboxStatus.FAILED if failed else OutboxStatus.DISPATCHED
        dispatched_at = utc_now()
        updates: dict[str, Any] = {
            "status": status.value,
            "dispatched_at": dispatched_at.isoformat(),
        }
        try:
            await self._store.update_document(
                DOMAIN_EVENTS_COLLECTION, event.domain_event_id, updates
            )
        except Exception as e:
            # 主写入已提交，状态回写失败只影响 outbox 记录
            log.error(
                "domain_event_status_update_failed",
                domain_event_id=event.domain_event_id,
                error_type=type(e).__name__,
            )
            return event

        updated = event.model_copy(update={"status": status, "dispatched_at": dispatched_at})
        if status == OutboxStatus.DISPATCHED:
            self.events.remove(event.domain_event_id)
        else:
            self.events.put(updated)
        log.debug(
            "domain_event_published",
            domain_event_id=event.domain_event_id,
            event_type=event.type.value,
            status=status.value,
        )
        return updated

    async def dispatch_pending(self) -> int:
        """启动时补发上次进程退出前未分发的 outbox 记录

        Returns:
            补发的事件数量
        """
        pending = [e for e in self.events.values() if e.status == OutboxStatus.PENDING]
        for event in pending:
            await self.publish(event)
        if pending:
            await log.ainfo("domain_events_redispatched", count=len(pending))
        return len(pending)

