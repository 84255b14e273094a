"""实体仓储缓存 -- 从 DocumentStore 重建的内存索引

仓储由各服务显式持有：启动时 load() 从存储重建，
每次写入成功后由服务同步 put()。缓存不是事实来源，进程重启后必须重建。
"""

import time
from collections.abc import Callable, Iterable
from typing import Generic, TypeVar

import structlog
from pydantic import BaseModel

from .store.protocols import DocumentStore

log = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)


class EntityRepository(Generic[ModelT]):
    """单集合实体缓存

    keep 不为空时，load() 只缓存满足条件的实体（如 outbox 只保留未分发的记录）。
    """

    def __init__(
        self,
        collection: str,
        model: type[ModelT],
        id_field: str,
        keep: Callable[[ModelT], bool] | None = None,
    ) -> None:
        self.collection = collection
        self._model = model
        self._id_field = id_field
        self._keep = keep
        self._items: dict[str, ModelT] = {}

    async def load(self, store: DocumentStore, factory_id: str | None = None) -> int:
        """从存储重建缓存（清空后全量加载）

        Returns:
            加载的实体数量
        """
        filters = {"factory_id": factory_id} if factory_id is not None else None
        documents = await store.get_collection(self.collection, filters)
        self._items = {}
        for document in documents:
            entity = self._model.model_validate(document)
            if self._keep is not None and not self._keep(entity):
                continue
            self._items[getattr(entity, self._id_field)] = entity
        return len(self._items)

    def get(self, entity_id: str) -> ModelT | None:
        return self._items.get(entity_id)

    def put(self, entity: ModelT) -> None:
        self._items[getattr(entity, self._id_field)] = entity

    def put_many(self, entities: Iterable[ModelT]) -> None:
        for entity in entities:
            self.put(entity)

    def remove(self, entity_id: str) -> None:
        self._items.pop(entity_id, None)

    def values(self, factory_id: str | None = None) -> list[ModelT]:
        """按写入顺序返回缓存实体，可按租户过滤"""
        items = list(self._items.values())
        if factory_id is None:
            return items
        return [item for item in items if getattr(item, "factory_id", None) == factory_id]

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._items


async def rebuild_all(
    store: DocumentStore,
    repositories: Iterable[EntityRepository],
) -> int:
    """从存储重建全部仓储缓存

    Args:
        store: DocumentStore 实例
        repositories: 需要重建的仓储

    Returns:
        加载的实体总数
    """
    start_time = time.monotonic()
    repositories = list(repositories)

    await log.ainfo(
        "cache_rebuild_started",
        collections=[repo.collection for repo in repositories],
    )

    total = 0
    counts: dict[str, int] = {}
    for repo in repositories:
        count = await repo.load(store)
        counts[repo.collection] = count
        total += count

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    await log.ainfo(
        "cache_rebuild_completed",
        entity_count=total,
        counts=counts,
        elapsed_ms=elapsed_ms,
    )

    return total
