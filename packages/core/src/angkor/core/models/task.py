"""Task Domain Model

Task 是租户内的工作单元。周期任务由模板 + 排期展开生成，
生成的任务总是带有模板引用与到期日。
"""

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .common import UTCDateTime, new_id
from .enums import Frequency, Priority, TaskStatus


class TaskComment(BaseModel):
    """任务评论"""

    comment_id: str = Field(default_factory=new_id, description="评论 ID")
    author: str = Field(default="", description="作者 ID")
    text: str = Field(description="评论内容")
    created_at: UTCDateTime = Field(description="创建时间")


def _check_recurrence(
    is_recurring: bool,
    recurring_template_id: str | None,
    due_date,
) -> None:
    if not is_recurring and recurring_template_id is not None:
        raise ValueError("non-recurring task must not reference a template")
    if is_recurring and (recurring_template_id is None or due_date is None):
        raise ValueError("recurring task requires a template reference and a due date")


class TaskDraft(BaseModel):
    """创建任务的输入字段

    title 必填；未提供 due_date 且提供 estimated_duration（天）时，
    到期日由创建时间推导。
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, description="任务标题")
    description: str = Field(default="")
    priority: Priority = Field(default=Priority.MEDIUM)
    due_date: UTCDateTime | None = Field(default=None)
    estimated_duration: int | None = Field(default=None, ge=0, description="预估天数")
    assigned_to: str | None = Field(default=None, description="负责人 ID")
    factory_id: str = Field(default="", description="租户 ID")
    created_by: str = Field(default="")
    is_recurring: bool = Field(default=False)
    recurring_template_id: str | None = Field(default=None)
    attachments: list[str] = Field(default_factory=list, description="附件引用")

    @model_validator(mode="after")
    def _recurrence_invariant(self) -> Self:
        _check_recurrence(self.is_recurring, self.recurring_template_id, self.due_date)
        return self


class Task(BaseModel):
    """Task 数据模型

    状态流转受 VALID_TRANSITIONS 约束；status/progress/assignment
    的任何变更都会刷新 updated_at。
    """

    task_id: str = Field(description="唯一标识，ULID 格式")
    title: str = Field(description="任务标题")
    description: str = Field(default="")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="当前状态")
    priority: Priority = Field(default=Priority.MEDIUM)
    progress: int = Field(default=0, ge=0, le=100, description="进度百分比")
    time_spent: float = Field(default=0.0, ge=0, description="累计耗时（小时）")
    due_date: UTCDateTime | None = Field(default=None)
    estimated_duration: int | None = Field(default=None, ge=0)
    assigned_to: str | None = Field(default=None)
    assigned_at: UTCDateTime | None = Field(default=None)
    factory_id: str = Field(default="", description="租户 ID")
    created_by: str = Field(default="")
    is_recurring: bool = Field(default=False)
    recurring_template_id: str | None = Field(default=None)
    comments: list[TaskComment] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)
    created_at: UTCDateTime = Field(description="创建时间")
    updated_at: UTCDateTime = Field(description="更新时间")
    completed_at: UTCDateTime | None = Field(default=None)

    @model_validator(mode="after")
    def _recurrence_invariant(self) -> Self:
        _check_recurrence(self.is_recurring, self.recurring_template_id, self.due_date)
        return self


class TaskTemplate(BaseModel):
    """周期任务模板 -- 克隆到每个生成实例的原型字段"""

    model_config = ConfigDict(str_strip_whitespace=True)

    template_id: str = Field(default_factory=new_id, description="模板 ID")
    title: str = Field(min_length=1)
    description: str = Field(default="")
    priority: Priority = Field(default=Priority.MEDIUM)
    estimated_duration: int | None = Field(default=None, ge=0)
    assigned_to: str | None = Field(default=None)
    factory_id: str = Field(default="")
    created_by: str = Field(default="")
    attachments: list[str] = Field(default_factory=list)


class RecurrenceSchedule(BaseModel):
    """周期排期配置（不落盘）

    end_date 为包含边界；max_occurrences 与 end_date 先到者为准。
    """

    frequency: Frequency
    start_date: UTCDateTime
    end_date: UTCDateTime
    max_occurrences: int = Field(ge=0)
