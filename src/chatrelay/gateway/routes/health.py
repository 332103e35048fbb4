"""健康检查路由

GET /health: Liveness 检查，永远返回 200，附带各协作方状态与消息总数。
GET /ready: Readiness 检查，Record Store 不可用时返回 503。
"""

from datetime import UTC, datetime

import structlog
from chatrelay.core.exceptions import StoreUnavailableError
from chatrelay.core.models import to_epoch_ms
from chatrelay.core.store import MessageStore
from chatrelay.media import ObjectStore, VideoSource
from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from ..deps import get_message_store, get_object_store, get_video_source

log = structlog.get_logger()

router = APIRouter()


async def _check_component(name: str, component: ObjectStore | VideoSource) -> str:
    try:
        return "ok" if await component.health_check() else "unreachable"
    except Exception as e:
        log.warning("health_check_error", component=name, error=str(e))
        return f"error: {e}"


@router.get("/health")
async def health(
    store: MessageStore = Depends(get_message_store),
    object_store: ObjectStore = Depends(get_object_store),
    video_source: VideoSource = Depends(get_video_source),
):
    """Liveness 检查 -- 永远返回 200

    status 为 ok 表示全部检查通过，degraded 表示至少一项失败。
    """
    checks: dict[str, str] = {}
    message_count: int | None = None

    try:
        message_count = await store.count()
        checks["store"] = "ok"
    except StoreUnavailableError as e:
        checks["store"] = f"error: {e}"

    checks["object_store"] = await _check_component("object_store", object_store)
    checks["video_source"] = await _check_component("video_source", video_source)

    all_ok = all(v == "ok" for v in checks.values())
    return {
        "status": "ok" if all_ok else "degraded",
        "checks": checks,
        "messageCount": message_count,
        "timestamp": to_epoch_ms(datetime.now(UTC)),
    }


@router.get("/ready")
async def ready(store: MessageStore = Depends(get_message_store)):
    """Readiness 检查 -- Record Store 可用才算就绪"""
    try:
        await store.ping()
    except StoreUnavailableError as e:
        log.warning("readiness_check_failed", error=str(e))
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "checks": {"store": f"error: {e}"}},
        )
    return {"status": "ready", "checks": {"store": "ok"}}
