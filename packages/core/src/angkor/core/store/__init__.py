"""Angkor Core Store -- 文档存储接口与 SQLite 实现

提供工厂函数创建共享数据库连接的 DocumentStore 实例。
"""

from pathlib import Path

import aiosqlite

from .document_store import SqliteDocumentStore
from .protocols import (
    BatchOperation,
    ChangeListener,
    Document,
    DocumentChange,
    DocumentStore,
    Unsubscribe,
)
from .sqlite_init import init_db
from .transaction import apply_batch, merge_document, write_document


async def create_document_store(db_path: str) -> SqliteDocumentStore:
    """创建 SQLite DocumentStore

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        SqliteDocumentStore 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    await init_db(conn)

    return SqliteDocumentStore(conn)


__all__ = [
    "BatchOperation",
    "ChangeListener",
    "Document",
    "DocumentChange",
    "DocumentStore",
    "SqliteDocumentStore",
    "Unsubscribe",
    "apply_batch",
    "create_document_store",
    "init_db",
    "merge_document",
    "write_document",
]
