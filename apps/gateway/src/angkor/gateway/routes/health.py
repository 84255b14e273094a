"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、缓存加载状态、磁盘空间、渠道模式。
"""

import shutil

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. sqlite: 数据库连通性
    2. caches: 各集合缓存条目数（启动时已重建）
    3. disk_space_mb: 磁盘剩余空间
    4. channel_mode: 渠道运行模式（log / webhook），仅报告不判定
    """
    checks = {}
    all_ok = True

    # 1. SQLite 连通性检查
    try:
        store = request.app.state.store
        cursor = await store.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        log.warning("readiness_sqlite_failed", error=str(e))
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    # 2. 缓存状态
    services = getattr(request.app.state, "services", None)
    if services is not None:
        checks["caches"] = {repo.collection: len(repo) for repo in services.repositories}
    else:
        checks["caches"] = "not_loaded"
        all_ok = False

    # 3. 磁盘空间检查
    try:
        disk_usage = shutil.disk_usage("/")
        checks["disk_space_mb"] = disk_usage.free // (1024 * 1024)
    except OSError:
        checks["disk_space_mb"] = 0
        all_ok = False

    # 4. 渠道模式
    channel_config = getattr(request.app.state, "channel_config", None)
    checks["channel_mode"] = channel_config.mode if channel_config else "unknown"

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "checks": checks,
        },
    )
