"""依赖注入模块 -- 通过 FastAPI Depends 注入服务与会话

服务实例通过 app.state 管理，在 lifespan 中初始化/清理。
会话身份由上游认证网关写入 X-User-Id / X-Factory-Id 请求头。
"""

from angkor.core.models import SessionContext
from fastapi import Header, Request
from fastapi.exceptions import RequestValidationError

from .services.container import ServiceGroup


def get_services(request: Request) -> ServiceGroup:
    """从 app.state 获取 ServiceGroup 实例"""
    return request.app.state.services


def get_session(
    x_user_id: str = Header(default="", description="当前用户 ID"),
    x_factory_id: str = Header(default="", description="当前租户（工厂）ID"),
    x_user_name: str = Header(default="", description="当前用户显示名"),
) -> SessionContext:
    """从请求头构建会话上下文；缺少身份或租户时返回 422"""
    missing = [
        name
        for name, value in (("x-user-id", x_user_id), ("x-factory-id", x_factory_id))
        if not value
    ]
    if missing:
        raise RequestValidationError(
            [
                {"loc": ("header", name), "msg": "Field required", "type": "missing"}
                for name in missing
            ]
        )
    return SessionContext(user_id=x_user_id, factory_id=x_factory_id, display_name=x_user_name)
