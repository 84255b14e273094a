"""任务路由

POST  /api/tasks: 创建任务
GET   /api/tasks: 任务列表，支持 status / assigned_to 筛选
GET   /api/tasks/overdue: 逾期任务
POST  /api/tasks/overdue/notify: 向逾期任务负责人发送提醒
POST  /api/tasks/bulk-assign: 批量分配（原子批次）
POST  /api/tasks/recurring: 按模板 + 排期生成周期任务
GET   /api/tasks/{task_id}: 任务详情
PATCH /api/tasks/{task_id}: 部分更新
POST  /api/tasks/{task_id}/assign | /progress | /comments
"""

from datetime import datetime

from angkor.core.exceptions import NotFoundError
from angkor.core.models import (
    Priority,
    RecurrenceSchedule,
    SessionContext,
    Task,
    TaskStatus,
)
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..deps import get_services, get_session
from ..services.container import ServiceGroup

router = APIRouter()


class TaskCreateRequest(BaseModel):
    """创建任务请求体（租户与创建人取自会话）"""

    title: str = Field(default="", description="任务标题")
    description: str = ""
    priority: Priority = Priority.MEDIUM
    due_date: datetime | None = None
    estimated_duration: int | None = Field(default=None, description="预估天数")
    assigned_to: str | None = None
    attachments: list[str] = Field(default_factory=list)


class TaskUpdateRequest(BaseModel):
    """部分更新请求体，只提交需要修改的字段"""

    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: Priority | None = None
    progress: int | None = None
    due_date: datetime | None = None
    estimated_duration: int | None = None
    assigned_to: str | None = None
    attachments: list[str] | None = None


class AssignRequest(BaseModel):
    assignee_id: str


class BulkAssignRequest(BaseModel):
    task_ids: list[str]
    assignee_id: str


class ProgressRequest(BaseModel):
    progress: int
    hours_spent: float = 0.0
    comment: str | None = None


class CommentRequest(BaseModel):
    text: str


class TemplateRequest(BaseModel):
    template_id: str | None = None
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    estimated_duration: int | None = None
    assigned_to: str | None = None
    attachments: list[str] = Field(default_factory=list)


class RecurringRequest(BaseModel):
    template: TemplateRequest
    schedule: RecurrenceSchedule


class TaskListResponse(BaseModel):
    """任务列表响应"""

    tasks: list[Task]


async def _tenant_task(services: ServiceGroup, task_id: str, session: SessionContext) -> Task:
    """查询当前租户内的任务；其他租户的任务视为不存在"""
    task = await services.tasks.get_task(task_id)
    if task.factory_id != session.factory_id:
        raise NotFoundError("task", task_id)
    return task


@router.post("/api/tasks", response_model=Task, status_code=201)
async def create_task(
    body: TaskCreateRequest,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    return await services.tasks.create_task(
        {
            **body.model_dump(),
            "factory_id": session.factory_id,
            "created_by": session.user_id,
        }
    )


@router.get("/api/tasks", response_model=TaskListResponse)
async def list_tasks(
    status: TaskStatus | None = Query(default=None, description="按状态筛选"),
    assigned_to: str | None = Query(default=None, description="按负责人筛选"),
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    """查询当前租户任务列表，按创建顺序"""
    tasks = await services.tasks.list_tasks(
        session.factory_id, status=status, assigned_to=assigned_to
    )
    return TaskListResponse(tasks=tasks)


@router.get("/api/tasks/overdue", response_model=TaskListResponse)
async def list_overdue_tasks(
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    tasks = await services.tasks.get_overdue_tasks(session.factory_id)
    return TaskListResponse(tasks=tasks)


@router.post("/api/tasks/overdue/notify", response_model=TaskListResponse)
async def notify_overdue_tasks(
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    tasks = await services.tasks.notify_overdue_tasks(session.factory_id)
    return TaskListResponse(tasks=tasks)


@router.post("/api/tasks/bulk-assign", response_model=TaskListResponse)
async def bulk_assign_tasks(
    body: BulkAssignRequest,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    """批量分配：任一任务不存在或不属于当前租户时整体拒绝"""
    for task_id in body.task_ids:
        await _tenant_task(services, task_id, session)
    tasks = await services.tasks.bulk_assign_tasks(
        body.task_ids, body.assignee_id, actor_id=session.user_id
    )
    return TaskListResponse(tasks=tasks)


@router.post("/api/tasks/recurring", response_model=TaskListResponse, status_code=201)
async def create_recurring_tasks(
    body: RecurringRequest,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    template = body.template.model_dump(exclude_none=True)
    template.update(factory_id=session.factory_id, created_by=session.user_id)
    tasks = await services.recurrence.create_recurring_tasks(template, body.schedule)
    return TaskListResponse(tasks=tasks)


@router.get("/api/tasks/{task_id}", response_model=Task)
async def get_task(
    task_id: str,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    return await _tenant_task(services, task_id, session)


@router.patch("/api/tasks/{task_id}", response_model=Task)
async def update_task(
    task_id: str,
    body: TaskUpdateRequest,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    await _tenant_task(services, task_id, session)
    return await services.tasks.update_task(task_id, body.model_dump(exclude_unset=True))


@router.post("/api/tasks/{task_id}/assign", response_model=Task)
async def assign_task(
    task_id: str,
    body: AssignRequest,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    await _tenant_task(services, task_id, session)
    return await services.tasks.assign_task(task_id, body.assignee_id)


@router.post("/api/tasks/{task_id}/progress", response_model=Task)
async def update_task_progress(
    task_id: str,
    body: ProgressRequest,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    await _tenant_task(services, task_id, session)
    return await services.tasks.update_task_progress(
        task_id,
        body.progress,
        hours_spent=body.hours_spent,
        comment=body.comment,
        author=session.user_id,
    )


@router.post("/api/tasks/{task_id}/comments", response_model=Task, status_code=201)
async def add_task_comment(
    task_id: str,
    body: CommentRequest,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    await _tenant_task(services, task_id, session)
    return await services.tasks.add_task_comment(task_id, body.text, author=session.user_id)
