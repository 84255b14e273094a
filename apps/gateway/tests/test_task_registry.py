"""TaskRegistry 单元测试

测试内容：
1. 创建任务：字段校验、到期日推导、分配通知
2. 部分更新：状态机、不可变字段、重新分配
3. 进度 / 评论
4. 查询与逾期提醒
"""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from angkor.core.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from angkor.core.models import NotificationType, Priority, TaskStatus


def _notifications_for(services, user_id: str):
    return [n for n in services.notifications.notifications.values() if n.target_id == user_id]


class TestCreateTask:
    """create_task"""

    async def test_create_unassigned_task(self, services):
        task = await services.tasks.create_task({"title": "Fire extinguisher check"})

        assert task.status == TaskStatus.PENDING
        assert task.progress == 0
        assert len(task.task_id) == 26  # ULID 长度
        assert task.created_at == task.updated_at
        assert len(services.notifications.notifications) == 0

        stored = await services.store.get_document("tasks", task.task_id)
        assert stored["title"] == "Fire extinguisher check"
        assert stored["status"] == "pending"

    async def test_missing_title_rejected_before_write(self, services):
        with pytest.raises(ValidationError):
            await services.tasks.create_task({"description": "no title"})
        assert await services.store.get_collection("tasks") == []
        assert len(services.tasks.tasks) == 0

    async def test_due_date_derived_from_estimated_duration(self, services):
        task = await services.tasks.create_task({"title": "Audit prep", "estimated_duration": 3})
        assert task.due_date == task.created_at + timedelta(days=3)

    async def test_explicit_due_date_wins(self, services):
        due = datetime(2030, 1, 1, tzinfo=UTC)
        task = await services.tasks.create_task(
            {"title": "Audit prep", "estimated_duration": 3, "due_date": due}
        )
        assert task.due_date == due

    async def test_assigned_task_notifies_assignee(self, services):
        task = await services.tasks.create_task(
            {
                "title": "Fire drill",
                "assigned_to": "user-2",
                "factory_id": "factory-a",
                "priority": "high",
            }
        )

        assert task.assigned_at is not None
        notifications = _notifications_for(services, "user-2")
        assert len(notifications) == 1
        notification = notifications[0]
        assert notification.type == NotificationType.TASK_ASSIGNED
        assert notification.priority == Priority.HIGH
        assert notification.related_task_id == task.task_id
        assert notification.factory_id == "factory-a"
        assert "Fire drill" in notification.message
        assert notification.status == "sent"
        # high -> in_app + email + sms
        assert notification.delivery_attempts == 3

    async def test_low_priority_assignment_notifies_with_medium(self, services):
        await services.tasks.create_task(
            {"title": "Tidy", "assigned_to": "user-2", "priority": "low"}
        )
        assert _notifications_for(services, "user-2")[0].priority == Priority.MEDIUM

    async def test_assignment_event_dispatched(self, services):
        task = await services.tasks.create_task({"title": "Fire drill", "assigned_to": "user-2"})
        stored = [
            e
            for e in await services.store.get_collection("domain_events")
            if e["entity_id"] == task.task_id
        ]
        assert len(stored) == 1
        assert stored[0]["status"] == "dispatched"
        # 已分发的记录不留在缓存中
        assert stored[0]["domain_event_id"] not in services.bus.events


class TestUpdateTask:
    """update_task"""

    async def test_valid_transition_chain(self, services):
        task = await services.tasks.create_task({"title": "Inspection"})

        started = await services.tasks.update_task(task.task_id, {"status": "in_progress"})
        assert started.status == TaskStatus.IN_PROGRESS
        assert started.updated_at >= task.updated_at
        assert started.completed_at is None

        done = await services.tasks.update_task(task.task_id, {"status": "completed"})
        assert done.status == TaskStatus.COMPLETED
        assert done.completed_at is not None

        stored = await services.store.get_document("tasks", task.task_id)
        assert stored["status"] == "completed"
        assert stored["completed_at"] is not None

    async def test_skip_transition_rejected(self, services):
        task = await services.tasks.create_task({"title": "Inspection"})
        with pytest.raises(InvalidTransitionError):
            await services.tasks.update_task(task.task_id, {"status": "completed"})
        assert (await services.tasks.get_task(task.task_id)).status == TaskStatus.PENDING

    async def test_terminal_task_cannot_reopen(self, services):
        task = await services.tasks.create_task({"title": "Inspection"})
        await services.tasks.update_task(task.task_id, {"status": "cancelled"})
        with pytest.raises(InvalidTransitionError):
            await services.tasks.update_task(task.task_id, {"status": "pending"})

    async def test_unknown_status_rejected(self, services):
        task = await services.tasks.create_task({"title": "Inspection"})
        with pytest.raises(ValidationError):
            await services.tasks.update_task(task.task_id, {"status": "archived"})

    @pytest.mark.parametrize("field", ["task_id", "created_at", "factory_id", "created_by"])
    async def test_immutable_fields_rejected(self, services, field):
        task = await services.tasks.create_task({"title": "Inspection"})
        with pytest.raises(ValidationError):
            await services.tasks.update_task(task.task_id, {field: "x"})

    async def test_plain_field_update(self, services):
        task = await services.tasks.create_task({"title": "Inspection"})
        updated = await services.tasks.update_task(
            task.task_id, {"title": "Boiler inspection", "priority": "high"}
        )
        assert updated.title == "Boiler inspection"
        assert updated.priority == Priority.HIGH
        stored = await services.store.get_document("tasks", task.task_id)
        assert stored["title"] == "Boiler inspection"

    async def test_invalid_field_value_rejected(self, services):
        task = await services.tasks.create_task({"title": "Inspection"})
        with pytest.raises(ValidationError):
            await services.tasks.update_task(task.task_id, {"progress": 500})

    async def test_missing_task(self, services):
        with pytest.raises(NotFoundError):
            await services.tasks.update_task("01JNONEXISTENT000000000000", {"title": "x"})

    async def test_reassignment_notifies_new_assignee_only(self, services):
        task = await services.tasks.create_task({"title": "Fire drill", "assigned_to": "user-2"})
        await services.tasks.update_task(task.task_id, {"description": "updated"})
        assert len(_notifications_for(services, "user-2")) == 1

        reassigned = await services.tasks.assign_task(task.task_id, "user-3")
        assert reassigned.assigned_to == "user-3"
        assert reassigned.assigned_at >= task.assigned_at
        assert len(_notifications_for(services, "user-3")) == 1
        assert len(_notifications_for(services, "user-2")) == 1

    async def test_assign_requires_assignee(self, services):
        task = await services.tasks.create_task({"title": "Fire drill"})
        with pytest.raises(ValidationError):
            await services.tasks.assign_task(task.task_id, "")

    async def test_concurrent_updates_keep_cache_in_sync(self, services):
        """并发更新同一任务：缓存与按字段合并后的存储一致"""
        task = await services.tasks.create_task({"title": "orig"})

        await asyncio.gather(
            services.tasks.update_task(task.task_id, {"title": "new title"}),
            services.tasks.update_task(task.task_id, {"description": "new desc"}),
        )

        cached = await services.tasks.get_task(task.task_id)
        stored = await services.store.get_document("tasks", task.task_id)
        assert (cached.title, cached.description) == ("new title", "new desc")
        assert (stored["title"], stored["description"]) == ("new title", "new desc")

        # 后续更新基于合并后的状态计算差异，不会被误判为无变化
        await services.tasks.update_task(task.task_id, {"title": "orig"})
        stored = await services.store.get_document("tasks", task.task_id)
        assert stored["title"] == "orig"
        assert (await services.tasks.get_task(task.task_id)).title == "orig"


class TestProgressAndComments:
    """update_task_progress / add_task_comment"""

    async def test_progress_starts_task(self, services):
        task = await services.tasks.create_task({"title": "Training"})
        updated = await services.tasks.update_task_progress(
            task.task_id, 40, hours_spent=1.5, comment="Half the line trained", author="user-1"
        )
        assert updated.status == TaskStatus.IN_PROGRESS
        assert updated.progress == 40
        assert updated.time_spent == 1.5
        assert updated.comments[0].text == "Half the line trained"
        assert updated.comments[0].author == "user-1"

    async def test_full_progress_completes(self, services):
        task = await services.tasks.create_task({"title": "Training"})
        await services.tasks.update_task_progress(task.task_id, 50, hours_spent=1)
        done = await services.tasks.update_task_progress(task.task_id, 150, hours_spent=2)
        assert done.progress == 100
        assert done.status == TaskStatus.COMPLETED
        assert done.completed_at is not None
        assert done.time_spent == 3

    async def test_zero_progress_keeps_pending(self, services):
        task = await services.tasks.create_task({"title": "Training"})
        updated = await services.tasks.update_task_progress(task.task_id, -10)
        assert updated.progress == 0
        assert updated.status == TaskStatus.PENDING

    async def test_progress_on_terminal_task_rejected(self, services):
        task = await services.tasks.create_task({"title": "Training"})
        await services.tasks.update_task(task.task_id, {"status": "cancelled"})
        with pytest.raises(InvalidTransitionError):
            await services.tasks.update_task_progress(task.task_id, 50)

    async def test_negative_hours_rejected(self, services):
        task = await services.tasks.create_task({"title": "Training"})
        with pytest.raises(ValidationError):
            await services.tasks.update_task_progress(task.task_id, 10, hours_spent=-1)

    async def test_add_comment(self, services):
        task = await services.tasks.create_task({"title": "Training"})
        await services.tasks.add_task_comment(task.task_id, "first", author="user-1")
        updated = await services.tasks.add_task_comment(task.task_id, "second", author="user-2")
        assert [c.text for c in updated.comments] == ["first", "second"]
        stored = await services.store.get_document("tasks", task.task_id)
        assert [c["text"] for c in stored["comments"]] == ["first", "second"]

    async def test_empty_comment_rejected(self, services):
        task = await services.tasks.create_task({"title": "Training"})
        with pytest.raises(ValidationError):
            await services.tasks.add_task_comment(task.task_id, "   ")


class TestQueries:
    """查询与逾期"""

    async def test_list_filters(self, services):
        a = await services.tasks.create_task(
            {"title": "A", "factory_id": "factory-a", "assigned_to": "user-2"}
        )
        await services.tasks.create_task({"title": "B", "factory_id": "factory-a"})
        await services.tasks.create_task({"title": "C", "factory_id": "factory-b"})
        await services.tasks.update_task(a.task_id, {"status": "in_progress"})

        assert len(await services.tasks.list_tasks("factory-a")) == 2
        assert [t.title for t in await services.tasks.list_tasks("factory-b")] == ["C"]
        in_progress = await services.tasks.get_tasks_by_status(
            TaskStatus.IN_PROGRESS, "factory-a"
        )
        assert [t.title for t in in_progress] == ["A"]

    async def test_tasks_by_assignee_sorted_by_due_date(self, services):
        base = datetime(2030, 1, 1, tzinfo=UTC)
        for title, offset in (("late", 5), ("none", None), ("early", 1)):
            fields = {"title": title, "assigned_to": "user-2"}
            if offset is not None:
                fields["due_date"] = base + timedelta(days=offset)
            await services.tasks.create_task(fields)

        tasks = await services.tasks.get_tasks_by_assignee("user-2")
        assert [t.title for t in tasks] == ["early", "late", "none"]

    async def test_overdue_excludes_terminal(self, services):
        past = datetime(2020, 1, 1, tzinfo=UTC)
        overdue = await services.tasks.create_task({"title": "Overdue", "due_date": past})
        cancelled = await services.tasks.create_task({"title": "Cancelled", "due_date": past})
        await services.tasks.update_task(cancelled.task_id, {"status": "cancelled"})
        await services.tasks.create_task({"title": "Future", "due_date": datetime(2099, 1, 1)})

        tasks = await services.tasks.get_overdue_tasks()
        assert [t.task_id for t in tasks] == [overdue.task_id]

    async def test_notify_overdue_tasks(self, services):
        now = datetime(2024, 6, 10, 12, 0, tzinfo=UTC)
        assigned = await services.tasks.create_task(
            {
                "title": "Chemical storage audit",
                "due_date": now - timedelta(days=2, hours=3),
                "assigned_to": "user-2",
                "factory_id": "factory-a",
            }
        )
        await services.tasks.create_task(
            {"title": "Unassigned", "due_date": now - timedelta(days=1), "factory_id": "factory-a"}
        )

        reminded = await services.tasks.notify_overdue_tasks("factory-a", now=now)

        assert [t.task_id for t in reminded] == [assigned.task_id]
        overdue = [
            n
            for n in _notifications_for(services, "user-2")
            if n.type == NotificationType.TASK_OVERDUE
        ]
        assert len(overdue) == 1
        assert overdue[0].priority == Priority.HIGH
        assert overdue[0].message == "Chemical storage audit is 3 days overdue"
        assert overdue[0].related_task_id == assigned.task_id
