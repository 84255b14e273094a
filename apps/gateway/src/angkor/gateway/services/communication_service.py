"""CommunicationThreadManager -- 线程消息与 mention 通知"""

from collections.abc import Mapping
from typing import Any

import structlog
from angkor.core.config import COMMUNICATIONS_COLLECTION
from angkor.core.exceptions import NotFoundError
from angkor.core.models import (
    Communication,
    CommunicationCreatedPayload,
    CommunicationDraft,
    DomainEventType,
    Reply,
    ReplyDraft,
    new_id,
    utc_now,
)
from angkor.core.repository import EntityRepository
from angkor.core.store import BatchOperation, DocumentStore
from angkor.core.validation import validate_fields

from .event_bus import DomainEventBus, new_domain_event, write_with_outbox

log = structlog.get_logger()


class CommunicationThreadManager:
    """线程消息业务服务"""

    def __init__(
        self,
        store: DocumentStore,
        bus: DomainEventBus,
        repository: EntityRepository[Communication] | None = None,
    ) -> None:
        self._store = store
        self._bus = bus
        self.communications = repository or EntityRepository(
            COMMUNICATIONS_COLLECTION, Communication, "communication_id"
        )

    async def create_communication(
        self,
        fields: CommunicationDraft | Mapping[str, Any],
    ) -> Communication:
        """创建线程，向每个被提及者发出一条 mention 通知

        Raises:
            ValidationError: 缺少 subject（未写入）
        """
        draft = validate_fields(CommunicationDraft, fields)
        now = utc_now()
        communication = Communication(
            communication_id=new_id(),
            **draft.model_dump(),
            replies=[],
            created_at=now,
            updated_at=now,
        )

        event = new_domain_event(
            DomainEventType.COMMUNICATION_CREATED,
            CommunicationCreatedPayload(
                communication_id=communication.communication_id,
                subject=communication.subject,
                mentions=communication.mentions,
            ),
            factory_id=communication.factory_id,
            entity_id=communication.communication_id,
            actor_id=communication.author,
        )
        await write_with_outbox(
            self._store,
            [
                BatchOperation(
                    collection=COMMUNICATIONS_COLLECTION,
                    doc_id=communication.communication_id,
                    fields=communication.model_dump(mode="json"),
                    kind="set",
                )
            ],
            event,
        )
        self.communications.put(communication)
        log.info(
            "communication_created",
            communication_id=communication.communication_id,
            factory_id=communication.factory_id,
            mention_count=len(communication.mentions),
        )

        await self._bus.publish(event)
        return communication

    async def add_reply(
        self,
        communication_id: str,
        fields: ReplyDraft | Mapping[str, Any],
    ) -> Communication:
        """追加回复并刷新 updated_at；回复内容不解析 mention

        Raises:
            NotFoundError: 线程不存在
            ValidationError: 回复内容为空
        """
        communication = await self.get_communication(communication_id)
        draft = validate_fields(ReplyDraft, fields)
        now = utc_now()
        reply = Reply(author=draft.author, body=draft.body, created_at=now)

        updated = communication.model_copy(
            update={"replies": [*communication.replies, reply], "updated_at": now}
        )
        await self._store.update_document(
            COMMUNICATIONS_COLLECTION,
            communication_id,
            {
                "replies": [r.model_dump(mode="json") for r in updated.replies],
                "updated_at": now.isoformat(),
            },
        )
        self.communications.put(updated)
        log.info(
            "communication_reply_added",
            communication_id=communication_id,
            reply_id=reply.reply_id,
            reply_count=len(updated.replies),
        )
        return updated

    async def get_communication(self, communication_id: str) -> Communication:
        communication = self.communications.get(communication_id)
        if communication is None:
            raise NotFoundError("communication", communication_id)
        return communication

    async def list_communications(self, factory_id: str) -> list[Communication]:
        """租户线程列表，最近更新在前"""
        return sorted(
            self.communications.values(factory_id),
            key=lambda c: c.updated_at,
            reverse=True,
        )
