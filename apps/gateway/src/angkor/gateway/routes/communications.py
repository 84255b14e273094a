"""线程消息路由

POST /api/communications: 创建线程（向被提及者发送 mention 通知）
GET  /api/communications: 租户线程列表
GET  /api/communications/{communication_id}: 线程详情
POST /api/communications/{communication_id}/replies: 追加回复
"""

from angkor.core.exceptions import NotFoundError
from angkor.core.models import Communication, SessionContext
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_services, get_session
from ..services.container import ServiceGroup

router = APIRouter()


class CommunicationCreateRequest(BaseModel):
    subject: str = ""
    body: str = ""
    mentions: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)


class ReplyRequest(BaseModel):
    body: str = ""


class CommunicationListResponse(BaseModel):
    communications: list[Communication]


async def _tenant_communication(
    services: ServiceGroup, communication_id: str, session: SessionContext
) -> Communication:
    communication = await services.communications.get_communication(communication_id)
    if communication.factory_id != session.factory_id:
        raise NotFoundError("communication", communication_id)
    return communication


@router.post("/api/communications", response_model=Communication, status_code=201)
async def create_communication(
    body: CommunicationCreateRequest,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    return await services.communications.create_communication(
        {
            **body.model_dump(),
            "author": session.user_id,
            "factory_id": session.factory_id,
        }
    )


@router.get("/api/communications", response_model=CommunicationListResponse)
async def list_communications(
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    communications = await services.communications.list_communications(session.factory_id)
    return CommunicationListResponse(communications=communications)


@router.get("/api/communications/{communication_id}", response_model=Communication)
async def get_communication(
    communication_id: str,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    return await _tenant_communication(services, communication_id, session)


@router.post(
    "/api/communications/{communication_id}/replies",
    response_model=Communication,
    status_code=201,
)
async def add_reply(
    communication_id: str,
    body: ReplyRequest,
    services: ServiceGroup = Depends(get_services),
    session: SessionContext = Depends(get_session),
):
    await _tenant_communication(services, communication_id, session)
    return await services.communications.add_reply(
        communication_id, {"author": session.user_id, "body": body.body}
    )
