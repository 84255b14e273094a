"""ReportingAggregator -- 任务报表（只读）"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from angkor.core.models import DateRange, TaskReport, utc_now
from angkor.core.reporting import summarize_tasks
from angkor.core.validation import validate_fields

from .task_service import TaskRegistry


class ReportingAggregator:
    """基于任务缓存的报表计算，不做任何写入"""

    def __init__(self, registry: TaskRegistry) -> None:
        self._registry = registry

    async def generate_task_report(
        self,
        factory_id: str,
        date_range: DateRange | Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> TaskReport:
        if date_range is not None:
            date_range = validate_fields(DateRange, date_range)
        tasks = await self._registry.list_tasks(factory_id)
        return summarize_tasks(tasks, factory_id, now or utc_now(), date_range)
