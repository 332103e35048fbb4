"""远程视频转存路由

POST /download-video: 解析分享链接 -> 流式转存到 Object Store -> 写入一条消息。
客户端断开时取消正在进行的转存，不写入消息。
"""

import asyncio
from collections.abc import Awaitable
from contextlib import suppress
from typing import Any

import structlog
from chatrelay.core.models import MessageDraft
from fastapi import APIRouter, Depends, Request
from starlette.responses import JSONResponse, Response

from ..deps import get_video_intake
from ..services.video_intake import VideoIntake
from .messages import MessageView

log = structlog.get_logger()

router = APIRouter()

DISCONNECT_POLL_INTERVAL_S = 0.5

# nginx 约定：客户端在响应前关闭连接
CLIENT_CLOSED_REQUEST = 499


class ClientDisconnectedError(Exception):
    """客户端在任务完成前断开"""


class VideoIntakeRequest(MessageDraft):
    """远程视频转存请求体：sourceUrl + username，可选 text / device / timestamp"""


async def run_until_disconnected(
    request: Request,
    work: Awaitable[Any],
    poll_interval: float = DISCONNECT_POLL_INTERVAL_S,
) -> Any:
    """执行 work，期间轮询客户端连接；断开时取消 work

    Raises:
        ClientDisconnectedError: 客户端先于 work 完成断开
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
                # 断开检测期间 work 可能已完成，此时结果已生效
                if task.cancelled():
                    raise ClientDisconnectedError()
                return task.result()
    finally:
        if not task.done():
            task.cancel()


@router.post("/download-video")
async def download_video(
    body: VideoIntakeRequest,
    request: Request,
    intake: VideoIntake = Depends(get_video_intake),
):
    """转存远程视频并记录为消息

    - 201: {success, message}
    - 400: sourceUrl / username / timestamp 校验失败
    - 500: SOURCE_UNAVAILABLE / UPLOAD_FAILED / STORE_UNAVAILABLE
    """
    try:
        message = await run_until_disconnected(request, intake.run(body))
    except ClientDisconnectedError:
        log.info("video_intake_cancelled", source_url=body.source_url)
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": MessageView.from_message(message).to_wire(),
        },
    )
