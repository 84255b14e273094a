"""TraceMiddleware -- 实体级 trace_id

从实体路径中提取 ID 并绑定 trace_id，贯穿同一实体的操作日志：
/api/tasks/{id}、/api/calendar/events/{id}、/api/communications/{id}、
/api/notifications/{id}。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# 路径段 -> trace 前缀
_ENTITY_SEGMENTS = {
    "tasks": "task",
    "events": "event",
    "communications": "communication",
    "notifications": "notification",
}

ULID_LENGTH = 26


def extract_trace_id(path: str) -> str | None:
    parts = [part for part in path.split("/") if part]
    for i, part in enumerate(parts[:-1]):
        prefix = _ENTITY_SEGMENTS.get(part)
        entity_id = parts[i + 1]
        # 排除 /api/tasks/overdue 这类集合子路由
        if prefix and len(entity_id) == ULID_LENGTH:
            return f"{prefix}-{entity_id}"
    return None


class TraceMiddleware(BaseHTTPMiddleware):
    """实体级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        trace_id = extract_trace_id(request.url.path)
        if trace_id:
            structlog.contextvars.bind_contextvars(trace_id=trace_id)

        return await call_next(request)
