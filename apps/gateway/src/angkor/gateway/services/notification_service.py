"""NotificationDispatcher -- 通知记录、渠道选择与投递

create_notification 流程：
1. 校验字段，以 status=pending / delivery_attempts=0 落盘
2. 按 (priority, type) 查表选出渠道，依次调用渠道适配器
3. 每次渠道调用累加 delivery_attempts；单渠道失败记录后继续其余渠道
4. 全部成功 -> sent（写 sent_at），任一失败 -> failed；不自动重投
"""

from collections.abc import Mapping
from typing import Any

import structlog
from angkor.channels import ChannelDeliveryError, ChannelGateway, select_channels
from angkor.core.config import NOTIFICATIONS_COLLECTION
from angkor.core.exceptions import InvalidTransitionError, NotFoundError
from angkor.core.models import (
    DeliveryReceipt,
    Notification,
    NotificationDraft,
    NotificationStatus,
    new_id,
    utc_now,
    validate_notification_transition,
)
from angkor.core.repository import EntityRepository
from angkor.core.store import BatchOperation, DocumentStore
from angkor.core.validation import validate_fields

from .event_bus import supports_batch

log = structlog.get_logger()


class NotificationDispatcher:
    """通知业务服务"""

    def __init__(
        self,
        store: DocumentStore,
        channels: ChannelGateway,
        repository: EntityRepository[Notification] | None = None,
    ) -> None:
        self._store = store
        self._channels = channels
        self.notifications = repository or EntityRepository(
            NOTIFICATIONS_COLLECTION, Notification, "notification_id"
        )

    async def create_notification(
        self,
        fields: NotificationDraft | Mapping[str, Any],
    ) -> Notification:
        """创建并立即投递通知

        Returns:
            投递完成后的 Notification（status 为 sent 或 failed）

        Raises:
            ValidationError: 字段缺失或不合法（未写入）
        """
        draft = validate_fields(NotificationDraft, fields)
        notification = Notification(
            notification_id=new_id(),
            **draft.model_dump(),
            status=NotificationStatus.PENDING,
            delivery_attempts=0,
            created_at=utc_now(),
        )

        await self._store.set_document(
            NOTIFICATIONS_COLLECTION,
            notification.notification_id,
            notification.model_dump(mode="json"),
        )
        self.notifications.put(notification)

        return await self._deliver(notification)

    async def _deliver(self, notification: Notification) -> Notification:
        """按渠道选择策略投递，回写投递结果"""
        channels = select_channels(notification.priority, notification.type)
        attempts = notification.delivery_attempts
        receipts: list[DeliveryReceipt] = []

        for channel in channels:
            attempts += 1
            try:
                receipt = await self._channels.send(channel, notification)
            except Exception as e:
                error = (
                    e
                    if isinstance(e, ChannelDeliveryError)
                    else ChannelDeliveryError(channel, f"{type(e).__name__}: {e}")
                )
                log.warning(
                    "notification_channel_failed",
                    notification_id=notification.notification_id,
                    channel=channel.value,
                    reason=error.reason,
                )
                receipt = DeliveryReceipt(channel=channel, success=False, detail=error.reason)
            else:
                if not receipt.success:
                    log.warning(
                        "notification_channel_rejected",
                        notification_id=notification.notification_id,
                        channel=channel.value,
                        detail=receipt.detail,
                    )
            receipts.append(receipt)

        failed = any(not receipt.success for receipt in receipts)
        status = NotificationStatus.FAILED if failed else NotificationStatus.SENT
        sent_at = None if failed else utc_now()

        updates = {
            "status": status.value,
            "delivery_attempts": attempts,
            "deliveries": [receipt.model_dump(mode="json") for receipt in receipts],
            "sent_at": sent_at.isoformat() if sent_at else None,
        }
        data = await self._store.update_document(
            NOTIFICATIONS_COLLECTION, notification.notification_id, updates
        )
        delivered = Notification.model_validate(data)
        self.notifications.put(delivered)

        log.info(
            "notification_dispatched",
            notification_id=delivered.notification_id,
            type=delivered.type.value,
            target_id=delivered.target_id,
            status=status.value,
            channels=[channel.value for channel in channels],
            delivery_attempts=attempts,
        )
        return delivered

    async def get_notification(self, notification_id: str) -> Notification:
        notification = self.notifications.get(notification_id)
        if notification is None:
            raise NotFoundError("notification", notification_id)
        return notification

    async def mark_notification_as_read(self, notification_id: str) -> Notification:
        """确认已读：sent -> read，写 read_at

        已读通知重复确认直接返回（幂等）。

        Raises:
            NotFoundError: 通知不存在
            InvalidTransitionError: 通知仍为 pending 或已 failed
        """
        notification = await self.get_notification(notification_id)
        if notification.status == NotificationStatus.READ:
            return notification

        if not validate_notification_transition(notification.status, NotificationStatus.READ):
            raise InvalidTransitionError(
                "notification", notification.status.value, NotificationStatus.READ.value
            )

        read_at = utc_now()
        data = await self._store.update_document(
            NOTIFICATIONS_COLLECTION,
            notification_id,
            {"status": NotificationStatus.READ.value, "read_at": read_at.isoformat()},
        )
        updated = Notification.model_validate(data)
        self.notifications.put(updated)
        return updated

    async def get_user_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        factory_id: str | None = None,
    ) -> list[Notification]:
        """查询用户通知，最新在前"""
        notifications = [
            n
            for n in self.notifications.values(factory_id)
            if n.target_id == user_id
            and (not unread_only or n.status != NotificationStatus.READ)
        ]
        notifications.sort(key=lambda n: (n.created_at, n.notification_id), reverse=True)
        return notifications

    async def mark_all_as_read(self, user_id: str, factory_id: str | None = None) -> int:
        """将用户全部已送达通知标记为已读（单次批量写入）

        pending / failed 通知不在此列，保持原状态。

        Returns:
            标记的通知数量
        """
        targets = [
            n
            for n in self.notifications.values(factory_id)
            if n.target_id == user_id and n.status == NotificationStatus.SENT
        ]
        if not targets:
            return 0

        read_at = utc_now()
        updates = {"status": NotificationStatus.READ.value, "read_at": read_at.isoformat()}
        if supports_batch(self._store):
            await self._store.batch_write(
                [
                    BatchOperation(
                        collection=NOTIFICATIONS_COLLECTION,
                        doc_id=n.notification_id,
                        fields=updates,
                    )
                    for n in targets
                ]
            )
        else:
            for n in targets:
                await self._store.update_document(
                    NOTIFICATIONS_COLLECTION, n.notification_id, updates
                )

        self.notifications.put_many(
            n.model_copy(update={"status": NotificationStatus.READ, "read_at": read_at})
            for n in targets
        )
        log.info("notifications_marked_read", user_id=user_id, count=len(targets))
        return len(targets)
