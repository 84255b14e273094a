"""日历路由

POST  /api/calendar/events: 创建事件（向参会人发送邀请）
GET   /api/calendar/events/upcoming: 即将开始的事件
GET   /api/calendar/export.ics: 导出租户日历
GET   /api/calendar/events/{event_id}: 事件详情
PATCH /api/calendar/events/{event_id}: 部分更新（重新生成 ICS）
GET   /api/calendar/events/{event_id}/ics: 单事件 ICS
POST  /api/calendar/events/{event_id}/sync: 推送到外部日历
"""

from datetime import datetime

from angkor.core.config import UPCOMING_EVENT_DAYS
from angkor.core.exceptions import NotFoundError
from angkor.core.models import CalendarEvent, CalendarSyncRecord, SessionContext
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from starlette.responses import Response

from ..deps import get_services, get_session
from ..services.container import ServiceGroup

router = APIRouter()

ICS_MEDIA_TYPE = "text/calendar; charset=utf-8"


class EventCreateRequest(BaseModel):
    title: str = ""
    description: str = ""
    location: str = ""
    organizer: str = ""
    start: datetime
    end: datetime
    attendees: list[str] = Field(default_factory=list)
    reminders: list[int] = Field(default_factory=list)


class EventUpdateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    location: str | None = None
    organizer: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    attendees: list[str] | None = None
    reminders: list[int] | None = None


class SyncRequest(BaseModel):
    target_name: str = Field(description="外部日历目标，如 google / outlook / ics")


class EventListResponse(BaseModel):
    events: list[CalendarEvent]


async def _tenant_event(
    services: ServiceGroup, event_id: str, session: SessionContext
) -> CalendarEvent:
    event = await services.calendar.get_calendar_event(event_id)
    if event.factory_id != session.factory_id:
        raise NotFoundError("calendar event", event_id)
    return event


@router.post("/api/calendar/events", response_model=CalendarEvent, status_code=201)
async def create_calendar_event(
    body: EventCreateRequest,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    return await services.calendar.create_calendar_event(
        {**body.model_dump(), "factory_id": session.factory_id},
        actor_id=session.user_id,
    )


@router.get("/api/calendar/events/upcoming", response_model=EventListResponse)
async def list_upcoming_events(
    days: int = Query(default=UPCOMING_EVENT_DAYS, ge=0, le=366),
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    events = await services.calendar.get_upcoming_events(session.factory_id, days=days)
    return EventListResponse(events=events)


@router.get("/api/calendar/export.ics")
async def export_calendar(
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    document = await services.calendar.export_calendar(session.factory_id)
    return Response(
        content=document,
        media_type=ICS_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="calendar.ics"'},
    )


@router.get("/api/calendar/events/{event_id}", response_model=CalendarEvent)
async def get_calendar_event(
    event_id: str,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    return await _tenant_event(services, event_id, session)


@router.patch("/api/calendar/events/{event_id}", response_model=CalendarEvent)
async def update_calendar_event(
    event_id: str,
    body: EventUpdateRequest,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    await _tenant_event(services, event_id, session)
    return await services.calendar.update_calendar_event(
        event_id, body.model_dump(exclude_unset=True)
    )


@router.get("/api/calendar/events/{event_id}/ics")
async def get_event_ics(
    event_id: str,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    event = await _tenant_event(services, event_id, session)
    return Response(content=event.ics_data, media_type=ICS_MEDIA_TYPE)


@router.post("/api/calendar/events/{event_id}/sync", response_model=CalendarSyncRecord)
async def sync_calendar_event(
    event_id: str,
    body: SyncRequest,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    """推送到外部日历；推送失败以 status=failed 的同步记录返回，而不是错误响应"""
    await _tenant_event(services, event_id, session)
    return await services.calendar.sync_with_external_calendar(event_id, body.target_name)
