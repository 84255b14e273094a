"""任务报表模型"""

from pydantic import BaseModel, Field

from .common import UTCDateTime


class DateRange(BaseModel):
    """报表时间范围（按 created_at 过滤，两端均可省略）"""

    start: UTCDateTime | None = Field(default=None)
    end: UTCDateTime | None = Field(default=None)


class TaskReportSummary(BaseModel):
    total_tasks: int = 0
    completed_tasks: int = 0
    pending_tasks: int = 0
    in_progress_tasks: int = 0
    cancelled_tasks: int = 0
    overdue_tasks: int = 0
    average_completion_time: float = Field(
        default=0.0,
        description="已完成任务平均完成耗时（天），无已完成任务时为 0",
    )


class TaskReport(BaseModel):
    """单租户任务报表"""

    generated_at: UTCDateTime
    factory_id: str
    date_range: DateRange | None = Field(default=None)
    summary: TaskReportSummary
    tasks_by_priority: dict[str, int] = Field(default_factory=dict)
    tasks_by_status: dict[str, int] = Field(default_factory=dict)
