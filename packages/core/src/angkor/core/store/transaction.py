"""文档写入 + 原子批量事务封装

write_document / merge_document 只执行语句、不提交事务，由调用方管理事务；
apply_batch 在同一 SQLite 事务内提交全部操作，任一失败整体回滚。
"""

import json
from datetime import UTC, datetime

import aiosqlite

from ..exceptions import BatchWriteError, NotFoundError
from .protocols import BatchOperation, Document, DocumentChange


def _encode(data: Document) -> str:
    return json.dumps(data, ensure_ascii=False)


async def write_document(
    conn: aiosqlite.Connection,
    collection: str,
    doc_id: str,
    fields: Document,
) -> Document:
    """整体写入文档（upsert），返回写入后的文档

    注意：此方法不自动提交事务，需由调用方管理事务。
    """
    now = datetime.now(UTC).isoformat()
    await conn.execute(
        """
        INSERT INTO documents (collection, doc_id, factory_id, data, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(collection, doc_id) DO UPDATE SET
            factory_id = excluded.factory_id,
            data = excluded.data,
            updated_at = excluded.updated_at
        """,
        (
            collection,
            doc_id,
            str(fields.get("factory_id") or ""),
            _encode(fields),
            now,
            now,
        ),
    )
    return dict(fields)


async def merge_document(
    conn: aiosqlite.Connection,
    collection: str,
    doc_id: str,
    partial: Document,
) -> Document:
    """合并部分字段（顶层浅合并），返回合并后的完整文档

    注意：此方法不自动提交事务，需由调用方管理事务。

    Raises:
        NotFoundError: 文档不存在
    """
    cursor = await conn.execute(
        "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
        (collection, doc_id),
    )
    row = await cursor.fetchone()
    if row is None:
        raise NotFoundError("document", f"{collection}/{doc_id}")

    data = json.loads(row[0]) if row[0] else {}
    data.update(partial)
    await conn.execute(
        """
        UPDATE documents
        SET data = ?, factory_id = ?, updated_at = ?
        WHERE collection = ? AND doc_id = ?
        """,
        (
            _encode(data),
            str(data.get("factory_id") or ""),
            datetime.now(UTC).isoformat(),
            collection,
            doc_id,
        ),
    )
    return data


async def apply_batch(
    conn: aiosqlite.Connection,
    operations: list[BatchOperation],
) -> list[DocumentChange]:
    """在同一事务内原子提交全部批量操作

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        operations: 批量操作列表

    Returns:
        每个操作对应的 DocumentChange（提交成功后才返回）

    Raises:
        BatchWriteError: 任一操作失败，整个批次回滚
    """
    changes: list[DocumentChange] = []
    try:
        for op in operations:
            if op.kind == "set":
                data = await write_document(conn, op.collection, op.doc_id, op.fields)
            else:
                data = await merge_document(conn, op.collection, op.doc_id, op.fields)
            changes.append(
                DocumentChange(
                    collection=op.collection,
                    doc_id=op.doc_id,
                    kind=op.kind,
                    data=data,
                )
            )

        # 原子提交
        await conn.commit()
    except Exception as e:
        await conn.rollback()
        raise BatchWriteError(
            f"Batch of {len(operations)} operations was not applied: {e}",
            original_error=e,
        ) from e
    return changes
