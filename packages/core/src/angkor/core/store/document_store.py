"""DocumentStore SQLite 实现

所有集合共用 documents 表，data 列保存 JSON 文档。
共享一个 aiosqlite 连接，写入与读取通过 asyncio.Lock 串行化，
避免协程交错时读到其他协程未提交的批次。
"""

import asyncio
import json
from collections import defaultdict
from typing import Any

import aiosqlite
import structlog

from .protocols import (
    BatchOperation,
    ChangeListener,
    Document,
    DocumentChange,
    Unsubscribe,
)
from .transaction import apply_batch, merge_document, write_document

log = structlog.get_logger()


def _matches(data: Document, filters: dict[str, Any] | None) -> bool:
    if not filters:
        return True
    return all(data.get(key) == value for key, value in filters.items())


class SqliteDocumentStore:
    """DocumentStore 的 SQLite 实现"""

    supports_batch_write = True

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self._lock = asyncio.Lock()
        # collection -> [(filters, listener)]
        self._listeners: dict[str, list[tuple[dict[str, Any] | None, ChangeListener]]] = (
            defaultdict(list)
        )

    async def get_collection(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> list[Document]:
        """查询集合，按写入顺序返回；factory_id 过滤走索引列"""
        filters = dict(filters or {})
        factory_id = filters.pop("factory_id", None)
        async with self._lock:
            if factory_id is not None:
                cursor = await self.conn.execute(
                    "SELECT data FROM documents WHERE collection = ? AND factory_id = ? "
                    "ORDER BY rowid ASC",
                    (collection, factory_id),
                )
            else:
                cursor = await self.conn.execute(
                    "SELECT data FROM documents WHERE collection = ? ORDER BY rowid ASC",
                    (collection,),
                )
            rows = await cursor.fetchall()

        documents = [json.loads(row[0]) for row in rows]
        return [doc for doc in documents if _matches(doc, filters)]

    async def get_document(self, collection: str, doc_id: str) -> Document | None:
        async with self._lock:
            cursor = await self.conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return json.loads(row[0])

    async def set_document(
        self,
        collection: str,
        doc_id: str,
        fields: Document,
    ) -> None:
        async with self._lock:
            try:
                data = await write_document(self.conn, collection, doc_id, fields)
                await self.conn.commit()
            except Exception:
                await self.conn.rollback()
                raise
        self._notify(DocumentChange(collection=collection, doc_id=doc_id, kind="set", data=data))

    async def update_document(
        self,
        collection: str,
        doc_id: str,
        partial: Document,
    ) -> Document:
        async with self._lock:
            try:
                data = await merge_document(self.conn, collection, doc_id, partial)
                await self.conn.commit()
            except Exception:
                await self.conn.rollback()
                raise
        self._notify(
            DocumentChange(collection=collection, doc_id=doc_id, kind="update", data=data)
        )
        return data

    async def batch_write(self, operations: list[BatchOperation]) -> None:
        """原子批量写入：全部生效或全部回滚（BatchWriteError）"""
        if not operations:
            return
        async with self._lock:
            changes = await apply_batch(self.conn, operations)
        for change in changes:
            self._notify(change)

    def subscribe(
        self,
        collection: str,
        filters: dict[str, Any] | None,
        on_change: ChangeListener,
    ) -> Unsubscribe:
        entry = (dict(filters) if filters else None, on_change)
        self._listeners[collection].append(entry)

        def unsubscribe() -> None:
            listeners = self._listeners.get(collection)
            if listeners and entry in listeners:
                listeners.remove(entry)
            if collection in self._listeners and not self._listeners[collection]:
                del self._listeners[collection]

        return unsubscribe

    async def close(self) -> None:
        await self.conn.close()

    def _notify(self, change: DocumentChange) -> None:
        """提交成功后通知订阅者；订阅者异常不影响写入结果"""
        for filters, listener in list(self._listeners.get(change.collection, [])):
            if not _matches(change.data, filters):
                continue
            try:
                listener(change)
            except Exception as e:
                log.warning(
                    "document_listener_failed",
                    collection=change.collection,
                    doc_id=change.doc_id,
                    error_type=type(e).__name__,
                )
