"""Store Protocol 接口定义

文档存储的抽象接口，使用 Python Protocol 实现结构化子类型（duck typing）。
编排核心只依赖此接口：集合查询、单文档写入、原子批量写入、变更订阅。
"""

from collections.abc import Callable
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

Document = dict[str, Any]


class BatchOperation(BaseModel):
    """批量写入中的单个操作

    kind="set" 整体写入（覆盖）；kind="update" 合并部分字段，文档必须已存在。
    """

    collection: str
    doc_id: str
    fields: dict[str, Any] = Field(default_factory=dict)
    kind: Literal["set", "update"] = Field(default="update")


class DocumentChange(BaseModel):
    """提交后推送给订阅者的文档变更"""

    collection: str
    doc_id: str
    kind: Literal["set", "update"]
    data: dict[str, Any] = Field(description="变更后的完整文档")


ChangeListener = Callable[[DocumentChange], None]
Unsubscribe = Callable[[], None]


class DocumentStore(Protocol):
    """文档存储接口

    单文档写入原子；跨文档原子性只能通过 batch_write 获得。
    """

    async def get_collection(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> list[Document]:
        """查询集合，filters 为顶层字段等值过滤"""
        ...

    async def get_document(self, collection: str, doc_id: str) -> Document | None:
        """根据 ID 查询单个文档"""
        ...

    async def set_document(
        self,
        collection: str,
        doc_id: str,
        fields: Document,
    ) -> None:
        """整体写入文档（不存在则创建）"""
        ...

    async def update_document(
        self,
        collection: str,
        doc_id: str,
        partial: Document,
    ) -> Document:
        """合并部分字段，返回合并后的完整文档；文档不存在时抛出 NotFoundError"""
        ...

    async def batch_write(self, operations: list[BatchOperation]) -> None:
        """原子批量写入：全部生效或全部不生效，失败抛出 BatchWriteError"""
        ...

    def subscribe(
        self,
        collection: str,
        filters: dict[str, Any] | None,
        on_change: ChangeListener,
    ) -> Unsubscribe:
        """订阅集合变更，返回取消订阅函数"""
        ...
