"""报表路由

GET /api/reports/tasks: 当前租户任务报表，可选 start / end（按 created_at 过滤）
"""

from datetime import datetime

from angkor.core.models import DateRange, SessionContext, TaskReport
from fastapi import APIRouter, Depends, Query

from ..deps import get_services, get_session
from ..services.container import ServiceGroup

router = APIRouter()


@router.get("/api/reports/tasks", response_model=TaskReport)
async def task_report(
    start: datetime | None = Query(default=None, description="created_at 下界（含）"),
    end: datetime | None = Query(default=None, description="created_at 上界（含）"),
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    date_range = DateRange(start=start, end=end) if start or end else None
    return await services.reports.generate_task_report(session.factory_id, date_range)
