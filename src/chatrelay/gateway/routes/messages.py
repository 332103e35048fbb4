"""消息路由

GET    /messages            最近 limit 条消息，最旧在前
POST   /messages            创建消息（201）
DELETE /messages/{id}       删除单条，不存在返回 404
DELETE /messages            批量清空（可选 admin key，403）
DELETE /messages/clear      批量清空（旧客户端路径）
POST   /messages/purge      按时间清理（可选 admin key，403）
"""

from datetime import timedelta

from chatrelay.core.models import ErrorCode, Message, MessageDraft, to_epoch_ms
from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from starlette.responses import JSONResponse

from ..deps import AdminKeyGuard, get_clear_guard, get_message_service
from ..errors import error_response
from ..services.message_service import MessageService

router = APIRouter()


class MessageView(BaseModel):
    """消息对外表示 -- camelCase 字段，timestamp 为 epoch 毫秒"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    username: str
    text: str | None = None
    media: str | None = None
    media_kind: str = "none"
    device: str | None = None
    source_url: str | None = None
    source_title: str | None = None
    timestamp: int

    @classmethod
    def from_message(cls, message: Message) -> "MessageView":
        return cls(
            id=message.id,
            username=message.username,
            text=message.text,
            media=message.media,
            media_kind=message.media_kind.value,
            device=message.device,
            source_url=message.source_url,
            source_title=message.source_title,
            timestamp=to_epoch_ms(message.timestamp),
        )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class MessageCreateRequest(MessageDraft):
    """消息创建请求体（字段宽松，校验在 Ingestion Pipeline 中完成）"""


class PurgeRequest(BaseModel):
    """按时间清理请求体"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    max_age_hours: float = Field(gt=0, le=876_000, description="删除早于该小时数的消息")


def _forbidden() -> JSONResponse:
    return error_response(403, ErrorCode.FORBIDDEN.value, "admin key required for this operation")


@router.get("/messages")
async def list_messages(
    limit: int | None = Query(default=None, description="返回条数，超出上限时截断"),
    service: MessageService = Depends(get_message_service),
):
    """最近 limit 条消息，按 timestamp 升序"""
    messages = await service.list_messages(limit)
    return [MessageView.from_message(m).to_wire() for m in messages]


@router.post("/messages")
async def create_message(
    body: MessageCreateRequest,
    service: MessageService = Depends(get_message_service),
):
    """创建消息

    - 成功返回 201 + 新消息；totalMessages 统计失败时为 null
    - 校验失败返回 400（MISSING_FIELD / EMPTY_MESSAGE / PAYLOAD_TOO_LARGE / INVALID_TIMESTAMP）
    """
    message = await service.create_message(body)
    total = await service.count_after_write()
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": MessageView.from_message(message).to_wire(),
            "totalMessages": total,
        },
    )


async def _clear(
    request: Request,
    service: MessageService,
    guard: AdminKeyGuard,
) -> JSONResponse:
    if not guard(request):
        return _forbidden()
    deleted = await service.clear_messages()
    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "message": f"Deleted {deleted} messages",
            "deletedCount": deleted,
        },
    )


@router.delete("/messages")
async def clear_messages(
    request: Request,
    service: MessageService = Depends(get_message_service),
    guard: AdminKeyGuard = Depends(get_clear_guard),
):
    """清空所有消息（不可恢复）"""
    return await _clear(request, service, guard)


@router.delete("/messages/clear")
async def clear_messages_legacy(
    request: Request,
    service: MessageService = Depends(get_message_service),
    guard: AdminKeyGuard = Depends(get_clear_guard),
):
    """清空所有消息 -- 旧客户端路径"""
    return await _clear(request, service, guard)


@router.post("/messages/purge")
async def purge_messages(
    body: PurgeRequest,
    request: Request,
    service: MessageService = Depends(get_message_service),
    guard: AdminKeyGuard = Depends(get_clear_guard),
):
    """删除早于 maxAgeHours 的消息（按需维护操作）"""
    if not guard(request):
        return _forbidden()
    deleted = await service.purge_messages(timedelta(hours=body.max_age_hours))
    return {"success": True, "deletedCount": deleted}


@router.delete("/messages/{message_id}")
async def delete_message(
    message_id: str,
    service: MessageService = Depends(get_message_service),
):
    """删除单条消息，不存在返回 404"""
    deleted_id = await service.delete_message(message_id)
    return {"success": True, "id": deleted_id}
