"""TaskRegistry -- 任务创建/更新/分配/查询业务逻辑

写入约定：
1. 先校验（ValidationError / NotFoundError / InvalidTransitionError 均发生在写入前）
2. 涉及分配时，任务写入与 DomainEvent 在同一批次原子落盘
3. 写入成功后同步更新缓存，再发布领域事件（通知失败不影响任务写入）
并发更新为 last-write-wins，不做版本校验。
"""

import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any

import structlog
from angkor.core.config import TASKS_COLLECTION
from angkor.core.exceptions import (
    BatchWriteError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from angkor.core.models import (
    TERMINAL_STATES,
    DomainEvent,
    DomainEventType,
    Task,
    TaskAssignedPayload,
    TaskComment,
    TaskDraft,
    TaskOverduePayload,
    TasksBulkAssignedPayload,
    TaskStatus,
    new_id,
    utc_now,
    validate_transition,
)
from angkor.core.repository import EntityRepository
from angkor.core.store import BatchOperation, DocumentStore
from angkor.core.validation import validate_fields

from .event_bus import (
    DomainEventBus,
    new_domain_event,
    outbox_operation,
    supports_batch,
    write_with_outbox,
)

log = structlog.get_logger()

# update_task 不允许修改的字段
_IMMUTABLE_FIELDS = frozenset({"task_id", "created_at", "factory_id", "created_by"})


def _diff(before: dict[str, Any], after: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in after.items() if before.get(key) != value}


class TaskRegistry:
    """任务业务服务"""

    def __init__(
        self,
        store: DocumentStore,
        bus: DomainEventBus,
        repository: EntityRepository[Task] | None = None,
    ) -> None:
        self._store = store
        self._bus = bus
        self.tasks = repository or EntityRepository(TASKS_COLLECTION, Task, "task_id")

    async def create_task(self, fields: TaskDraft | Mapping[str, Any]) -> Task:
        """创建任务

        未提供 due_date 且提供 estimated_duration 时，due_date = created_at + N 天。
        有负责人时发出一条 task_assigned 通知。

        Raises:
            ValidationError: 缺少 title 等字段不合法（未写入）
        """
        draft = validate_fields(TaskDraft, fields)
        now = utc_now()

        due_date = draft.due_date
        if due_date is None and draft.estimated_duration is not None:
            due_date = now + timedelta(days=draft.estimated_duration)

        task = Task(
            task_id=new_id(),
            **draft.model_dump(exclude={"due_date"}),
            due_date=due_date,
            status=TaskStatus.PENDING,
            assigned_at=now if draft.assigned_to else None,
            created_at=now,
            updated_at=now,
        )
        document = task.model_dump(mode="json")

        event = None
        if task.assigned_to:
            event = self._assignment_event(task)
            await write_with_outbox(
                self._store,
                [
                    BatchOperation(
                        collection=TASKS_COLLECTION,
                        doc_id=task.task_id,
                        fields=document,
                        kind="set",
                    )
                ],
                event,
            )
        else:
            await self._store.set_document(TASKS_COLLECTION, task.task_id, document)

        self.tasks.put(task)
        log.info(
            "task_created",
            task_id=task.task_id,
            factory_id=task.factory_id,
            assigned_to=task.assigned_to,
            is_recurring=task.is_recurring,
        )

        if event is not None:
            await self._bus.publish(event)
        return task

    async def update_task(self, task_id: str, partial: Mapping[str, Any]) -> Task:
        """合并部分字段并刷新 updated_at

        status 变更受任务状态机约束，进入 completed 时写 completed_at；
        负责人变更发出一条 task_assigned 通知。

        Raises:
            NotFoundError: 任务不存在
            ValidationError: 字段不合法或试图修改不可变字段
            InvalidTransitionError: 非法状态流转
        """
        task = await self.get_task(task_id)
        partial = dict(partial)

        immutable = _IMMUTABLE_FIELDS.intersection(partial)
        if immutable:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(immutable))}")

        now = utc_now()
        merged = {**task.model_dump(), **partial, "updated_at": now}

        if "status" in partial:
            try:
                new_status = TaskStatus(partial["status"])
            except ValueError as e:
                raise ValidationError(f"Unknown task status: {partial['status']}") from e
            if new_status != task.status and not validate_transition(task.status, new_status):
                raise InvalidTransitionError("task", task.status.value, new_status.value)
            if new_status == TaskStatus.COMPLETED and task.status != TaskStatus.COMPLETED:
                if merged.get("completed_at") is None:
                    merged["completed_at"] = now

        reassigned = "assigned_to" in partial and partial["assigned_to"] != task.assigned_to
        if reassigned:
            merged["assigned_at"] = now if partial["assigned_to"] else None

        updated = validate_fields(Task, merged)
        event = self._assignment_event(updated) if reassigned and updated.assigned_to else None
        return await self._save(task, updated, event)

    async def assign_task(self, task_id: str, assignee_id: str) -> Task:
        """分配任务（负责人变更时通知新负责人）"""
        if not assignee_id:
            raise ValidationError("assignee_id is required")
        return await self.update_task(task_id, {"assigned_to": assignee_id})

    async def update_task_progress(
        self,
        task_id: str,
        progress: int,
        hours_spent: float = 0.0,
        comment: str | None = None,
        author: str = "",
    ) -> Task:
        """更新进度

        进度裁剪到 0-100；>0 时 pending 进入 in_progress，>=100 时完成并写 completed_at。
        hours_spent 累加到 time_spent，comment 非空时追加一条评论。

        Raises:
            NotFoundError: 任务不存在
            InvalidTransitionError: 任务已在终态
            ValidationError: hours_spent 为负
        """
        task = await self.get_task(task_id)
        if hours_spent < 0:
            raise ValidationError("hours_spent must not be negative")

        progress = min(100, max(0, int(progress)))
        target_status = task.status
        if progress >= 100:
            target_status = TaskStatus.COMPLETED
        elif progress > 0 and task.status == TaskStatus.PENDING:
            target_status = TaskStatus.IN_PROGRESS

        if task.status in TERMINAL_STATES:
            raise InvalidTransitionError("task", task.status.value, target_status.value)

        now = utc_now()
        changes: dict[str, Any] = {
            "progress": progress,
            "status": target_status,
            "time_spent": task.time_spent + hours_spent,
            "updated_at": now,
        }
        if target_status == TaskStatus.COMPLETED:
            # pending -> in_progress -> completed 两步均合法，一次完成
            changes["completed_at"] = now
        if comment:
            changes["comments"] = [
                *task.comments,
                TaskComment(author=author, text=comment, created_at=now),
            ]

        updated = validate_fields(Task, {**task.model_dump(), **changes})
        return await self._save(task, updated)

    async def add_task_comment(self, task_id: str, text: str, author: str = "") -> Task:
        """追加任务评论

        Raises:
            NotFoundError: 任务不存在
            ValidationError: 评论为空
        """
        task = await self.get_task(task_id)
        text = (text or "").strip()
        if not text:
            raise ValidationError("comment text is required")

        now = utc_now()
        updated = task.model_copy(
            update={
                "comments": [*task.comments, TaskComment(author=author, text=text, created_at=now)],
                "updated_at": now,
            }
        )
        return await self._save(task, updated)

    async def bulk_assign_tasks(
        self,
        task_ids: Iterable[str],
        assignee_id: str,
        actor_id: str = "",
    ) -> list[Task]:
        """批量分配：全部任务更新与 outbox 记录在同一原子批次中提交

        恰好发出一条 bulk_task_assigned 通知，引用全部任务 ID。

        Raises:
            ValidationError: 空列表 / 缺少负责人 / 跨租户
            NotFoundError: 任一任务不存在（未写入）
            BatchWriteError: 存储不支持批量写入或批次失败（未写入，缓存不变）
        """
        ids = list(dict.fromkeys(task_ids))
        if not ids:
            raise ValidationError("task_ids must not be empty")
        if not assignee_id:
            raise ValidationError("assignee_id is required")

        tasks = [await self.get_task(task_id) for task_id in ids]
        factories = {task.factory_id for task in tasks}
        if len(factories) > 1:
            raise ValidationError(
                f"Bulk assignment cannot mix tenants: {', '.join(sorted(factories))}"
            )
        if not supports_batch(self._store):
            raise BatchWriteError("Document store does not support atomic batch writes")

        now = utc_now()
        fields = {
            "assigned_to": assignee_id,
            "assigned_at": now.isoformat(),
            "updated_at": now.isoformat(),
        }
        event = new_domain_event(
            DomainEventType.TASKS_BULK_ASSIGNED,
            TasksBulkAssignedPayload(task_ids=ids, assignee_id=assignee_id),
            factory_id=factories.pop(),
            entity_id=ids[0],
            actor_id=actor_id,
        )
        operations = [
            BatchOperation(collection=TASKS_COLLECTION, doc_id=task_id, fields=fields)
            for task_id in ids
        ]
        operations.append(outbox_operation(event))

        # 失败时 BatchWriteError 原样传播，缓存未触碰
        await self._store.batch_write(operations)

        updated = [
            Task.model_validate(await self._store.get_document(TASKS_COLLECTION, task_id))
            for task_id in ids
        ]
        self.tasks.put_many(updated)
        log.info(
            "tasks_bulk_assigned",
            assignee_id=assignee_id,
            task_count=len(updated),
            factory_id=event.factory_id,
        )

        await self._bus.publish(event)
        return updated

    async def notify_overdue_tasks(
        self,
        factory_id: str,
        now: datetime | None = None,
    ) -> list[Task]:
        """为逾期且有负责人的任务各发出一条 task_overdue 通知

        Returns:
            已提醒的任务
        """
        now = now or utc_now()
        overdue = [
            task for task in await self.get_overdue_tasks(factory_id, now) if task.assigned_to
        ]
        for task in overdue:
            days_overdue = max(1, math.ceil((now - task.due_date).total_seconds() / 86400))
            event = new_domain_event(
                DomainEventType.TASK_OVERDUE,
                TaskOverduePayload(
                    task_id=task.task_id,
                    title=task.title,
                    assignee_id=task.assigned_to,
                    days_overdue=days_overdue,
                ),
                factory_id=task.factory_id,
                entity_id=task.task_id,
            )
            await write_with_outbox(self._store, [], event)
            await self._bus.publish(event)

        log.info("overdue_tasks_notified", factory_id=factory_id, count=len(overdue))
        return overdue

    async def get_task(self, task_id: str) -> Task:
        """查询任务详情

        Raises:
            NotFoundError: 任务不存在
        """
        task = self.tasks.get(task_id)
        if task is None:
            raise NotFoundError("task", task_id)
        return task

    async def list_tasks(
        self,
        factory_id: str | None = None,
        status: TaskStatus | None = None,
        assigned_to: str | None = None,
    ) -> list[Task]:
        """查询任务列表（按创建顺序）"""
        return [
            task
            for task in self.tasks.values(factory_id)
            if (status is None or task.status == status)
            and (assigned_to is None or task.assigned_to == assigned_to)
        ]

    async def get_tasks_by_assignee(
        self, assignee_id: str, factory_id: str | None = None
    ) -> list[Task]:
        """负责人名下任务，按到期日升序（无到期日排最后）"""
        tasks = await self.list_tasks(factory_id, assigned_to=assignee_id)
        return sorted(tasks, key=lambda t: (t.due_date is None, t.due_date or t.created_at))

    async def get_tasks_by_status(
        self, status: TaskStatus, factory_id: str | None = None
    ) -> list[Task]:
        return await self.list_tasks(factory_id, status=status)

    async def get_overdue_tasks(
        self,
        factory_id: str | None = None,
        now: datetime | None = None,
    ) -> list[Task]:
        """到期日已过且仍在 pending / in_progress 的任务"""
        now = now or utc_now()
        return [
            task
            for task in self.tasks.values(factory_id)
            if task.status not in TERMINAL_STATES
            and task.due_date is not None
            and task.due_date < now
        ]

    def _assignment_event(self, task: Task) -> DomainEvent:
        return new_domain_event(
            DomainEventType.TASK_ASSIGNED,
            TaskAssignedPayload(
                task_id=task.task_id,
                title=task.title,
                assignee_id=task.assigned_to or "",
                priority=task.priority,
            ),
            factory_id=task.factory_id,
            entity_id=task.task_id,
            actor_id=task.created_by,
        )

    async def _save(self, before: Task, after: Task, event: DomainEvent | None = None) -> Task:
        """只写入变化的字段；有领域事件时与之原子提交

        缓存取合并后的存储文档，而不是调用方的快照：并发更新同一任务时，
        存储按字段合并，缓存必须与之一致。
        """
        changes = _diff(before.model_dump(mode="json"), after.model_dump(mode="json"))
        if event is not None:
            await write_with_outbox(
                self._store,
                [BatchOperation(collection=TASKS_COLLECTION, doc_id=after.task_id, fields=changes)],
                event,
            )
            data = await self._store.get_document(TASKS_COLLECTION, after.task_id)
        else:
            data = await self._store.update_document(TASKS_COLLECTION, after.task_id, changes)

        saved = Task.model_validate(data)
        self.tasks.put(saved)
        log.info(
            "task_updated",
            task_id=after.task_id,
            fields=sorted(changes),
            status=saved.status.value,
        )

        if event is not None:
            await self._bus.publish(event)
        return saved
