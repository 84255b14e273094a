"""NotificationFeed -- 按用户推送通知变更

每个订阅者持有一个 asyncio.Queue，由 DocumentStore.subscribe 在通知写入提交后喂入。
队列满时丢弃该订阅者（客户端可重连后通过列表接口补齐）。
"""

import asyncio

import structlog
from angkor.core.config import NOTIFICATIONS_COLLECTION
from angkor.core.models import Notification
from angkor.core.store import DocumentChange, DocumentStore, Unsubscribe

log = structlog.get_logger()


class NotificationFeed:
    """通知订阅器 -- 基于 asyncio.Queue 的发布/订阅"""

    def __init__(self, store: DocumentStore, queue_maxsize: int = 100) -> None:
        self._store = store
        self._queue_maxsize = queue_maxsize
        self._subscriptions: dict[asyncio.Queue, Unsubscribe] = {}

    def subscribe(self, user_id: str) -> asyncio.Queue:
        """订阅指定用户的通知变更

        Returns:
            asyncio.Queue，元素为变更后的 Notification
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)

        def on_change(change: DocumentChange) -> None:
            if queue not in self._subscriptions:
                return
            try:
                queue.put_nowait(Notification.model_validate(change.data))
            except asyncio.QueueFull:
                log.warning("notification_feed_queue_full", user_id=user_id)
                self.unsubscribe(queue)

        self._subscriptions[queue] = self._store.subscribe(
            NOTIFICATIONS_COLLECTION, {"target_id": user_id}, on_change
        )
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        unsubscribe = self._subscriptions.pop(queue, None)
        if unsubscribe is not None:
            unsubscribe()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)
