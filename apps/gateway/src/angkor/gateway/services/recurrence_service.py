"""RecurringTaskGenerator -- 模板 + 排期展开为具体任务"""

from collections.abc import Mapping
from typing import Any

import structlog
from angkor.core.models import RecurrenceSchedule, Task, TaskDraft, TaskTemplate
from angkor.core.recurrence import iter_occurrences
from angkor.core.validation import validate_fields

from .task_service import TaskRegistry

log = structlog.get_logger()


class RecurringTaskGenerator:
    """周期任务生成器 -- 每个候选日期通过 TaskRegistry.create_task 创建一个实例"""

    def __init__(self, registry: TaskRegistry) -> None:
        self._registry = registry

    async def create_recurring_tasks(
        self,
        template: TaskTemplate | Mapping[str, Any],
        schedule: RecurrenceSchedule | Mapping[str, Any],
    ) -> list[Task]:
        """按排期生成任务实例

        标题为 "{模板标题} - {YYYY-MM-DD}"，due_date 为候选日期。
        start_date > end_date 或 max_occurrences == 0 时返回空列表。

        Returns:
            按日期升序的已创建任务
        """
        template = validate_fields(TaskTemplate, template)
        schedule = validate_fields(RecurrenceSchedule, schedule)

        tasks: list[Task] = []
        for due_date in iter_occurrences(schedule):
            draft = TaskDraft(
                title=f"{template.title} - {due_date.strftime('%Y-%m-%d')}",
                description=template.description,
                priority=template.priority,
                due_date=due_date,
                estimated_duration=template.estimated_duration,
                assigned_to=template.assigned_to,
                factory_id=template.factory_id,
                created_by=template.created_by,
                is_recurring=True,
                recurring_template_id=template.template_id,
                attachments=list(template.attachments),
            )
            tasks.append(await self._registry.create_task(draft))

        log.info(
            "recurring_tasks_created",
            template_id=template.template_id,
            frequency=schedule.frequency.value,
            count=len(tasks),
        )
        return tasks
