"""任务报表计算 -- 纯读侧计算，不做任何写入"""

from collections.abc import Iterable
from datetime import datetime

from .models.enums import Priority, TaskStatus
from .models.report import DateRange, TaskReport, TaskReportSummary
from .models.task import Task

_SECONDS_PER_DAY = 86400


def is_overdue(task: Task, now: datetime) -> bool:
    """未完成且到期日早于当前时间"""
    return (
        task.status != TaskStatus.COMPLETED
        and task.due_date is not None
        and task.due_date < now
    )


def average_completion_days(tasks: Iterable[Task]) -> float:
    """已完成任务 (completed_at - created_at) 的平均天数，无已完成任务时返回 0"""
    durations = [
        (task.completed_at - task.created_at).total_seconds()
        for task in tasks
        if task.status == TaskStatus.COMPLETED and task.completed_at is not None
    ]
    if not durations:
        return 0.0
    return round(sum(durations) / len(durations) / _SECONDS_PER_DAY, 2)


def _in_range(task: Task, date_range: DateRange | None) -> bool:
    if date_range is None:
        return True
    if date_range.start is not None and task.created_at < date_range.start:
        return False
    if date_range.end is not None and task.created_at > date_range.end:
        return False
    return True


def summarize_tasks(
    tasks: Iterable[Task],
    factory_id: str,
    now: datetime,
    date_range: DateRange | None = None,
) -> TaskReport:
    """按租户（及可选 created_at 范围）统计任务

    Args:
        tasks: 候选任务（可包含其他租户，内部过滤）
        factory_id: 租户 ID
        now: 计算逾期的参考时间
        date_range: 可选 created_at 过滤范围

    Returns:
        TaskReport
    """
    factory_tasks = [
        task for task in tasks if task.factory_id == factory_id and _in_range(task, date_range)
    ]

    by_status = {status.value: 0 for status in TaskStatus}
    by_priority = {priority.value: 0 for priority in Priority}
    overdue = 0
    for task in factory_tasks:
        by_status[task.status.value] += 1
        by_priority[task.priority.value] += 1
        if is_overdue(task, now):
            overdue += 1

    summary = TaskReportSummary(
        total_tasks=len(factory_tasks),
        completed_tasks=by_status[TaskStatus.COMPLETED.value],
        pending_tasks=by_status[TaskStatus.PENDING.value],
        in_progress_tasks=by_status[TaskStatus.IN_PROGRESS.value],
        cancelled_tasks=by_status[TaskStatus.CANCELLED.value],
        overdue_tasks=overdue,
        average_completion_time=average_completion_days(factory_tasks),
    )

    return TaskReport(
        generated_at=now,
        factory_id=factory_id,
        date_range=date_range,
        summary=summary,
        tasks_by_priority=by_priority,
        tasks_by_status=by_status,
    )
