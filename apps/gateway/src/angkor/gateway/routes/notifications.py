"""通知路由

GET  /api/notifications: 当前用户通知（最新在前），支持 unread_only
GET  /api/notifications/stream: SSE 实时推送当前用户的通知变更
POST /api/notifications/read-all: 全部已送达通知标记为已读
GET  /api/notifications/{notification_id}: 通知详情
POST /api/notifications/{notification_id}/read: 标记为已读（幂等）
"""

import asyncio
import json

from angkor.core.config import SSE_HEARTBEAT_INTERVAL
from angkor.core.exceptions import NotFoundError
from angkor.core.models import Notification, SessionContext
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sse_starlette.sse import EventSourceResponse

from ..deps import get_services, get_session
from ..services.container import ServiceGroup

router = APIRouter()


class NotificationListResponse(BaseModel):
    notifications: list[Notification]
    unread_count: int


class ReadAllResponse(BaseModel):
    marked: int


def _notification_to_sse(notification: Notification) -> dict:
    return {
        "id": notification.notification_id,
        "event": notification.status.value,
        "data": json.dumps(notification.model_dump(mode="json"), ensure_ascii=False),
    }


async def _user_notification(
    services: ServiceGroup, notification_id: str, session: SessionContext
) -> Notification:
    """只允许访问发给当前用户的通知"""
    notification = await services.notifications.get_notification(notification_id)
    if (
        notification.target_id != session.user_id
        or notification.factory_id != session.factory_id
    ):
        raise NotFoundError("notification", notification_id)
    return notification


@router.get("/api/notifications", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(default=False),
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    notifications = await services.notifications.get_user_notifications(
        session.user_id, unread_only=unread_only, factory_id=session.factory_id
    )
    unread = await services.notifications.get_user_notifications(
        session.user_id, unread_only=True, factory_id=session.factory_id
    )
    return NotificationListResponse(notifications=notifications, unread_count=len(unread))


@router.get("/api/notifications/stream")
async def stream_notifications(
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    """SSE 通知流

    1. 注册到 NotificationFeed 监听当前用户的通知写入
    2. 推送变更后的完整通知（event 为通知状态）
    3. 心跳保活
    """
    queue = services.feed.subscribe(session.user_id)

    async def event_generator():
        try:
            while True:
                try:
                    notification = await asyncio.wait_for(
                        queue.get(), timeout=SSE_HEARTBEAT_INTERVAL
                    )
                    if notification.factory_id != session.factory_id:
                        continue
                    yield _notification_to_sse(notification)
                except TimeoutError:
                    yield {"comment": "heartbeat"}
        finally:
            services.feed.unsubscribe(queue)

    return EventSourceResponse(event_generator())


@router.post("/api/notifications/read-all", response_model=ReadAllResponse)
async def mark_all_as_read(
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    marked = await services.notifications.mark_all_as_read(
        session.user_id, factory_id=session.factory_id
    )
    return ReadAllResponse(marked=marked)


@router.get("/api/notifications/{notification_id}", response_model=Notification)
async def get_notification(
    notification_id: str,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    return await _user_notification(services, notification_id, session)


@router.post("/api/notifications/{notification_id}/read", response_model=Notification)
async def mark_notification_as_read(
    notification_id: str,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    await _user_notification(services, notification_id, session)
    return await services.notifications.mark_notification_as_read(notification_id)
