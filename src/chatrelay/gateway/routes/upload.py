"""文件上传路由

POST /upload: multipart 表单字段 file，或直接以请求体发送原始字节。
字节流边读边写入 Object Store，超过上传上限返回 400。
"""

from collections.abc import AsyncIterator

import structlog
from chatrelay.core.exceptions import MissingFieldError, PayloadTooLargeError
from chatrelay.media import MediaConfig, ObjectStore, StoredObject, limit_stream
from fastapi import APIRouter, Depends, Request
from starlette.datastructures import UploadFile

from ..deps import get_media_config, get_object_store

log = structlog.get_logger()

router = APIRouter()

_READ_CHUNK_SIZE = 1024 * 1024

# multipart 边界与表单头的额外开销
_MULTIPART_OVERHEAD = 64 * 1024


def resource_type_for(content_type: str) -> str:
    """按 MIME 类型给出 Object Store 资源类型提示"""
    major = content_type.split("/", 1)[0].lower()
    if major in ("image", "video"):
        return major
    return "auto"


async def _iter_upload_file(file: UploadFile) -> AsyncIterator[bytes]:
    while chunk := await file.read(_READ_CHUNK_SIZE):
        yield chunk


async def _iter_body(first: bytes, rest: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    yield first
    async for chunk in rest:
        if chunk:
            yield chunk


async def _store(
    object_store: ObjectStore,
    chunks: AsyncIterator[bytes],
    filename: str,
    content_type: str,
    limit: int,
) -> StoredObject:
    return await object_store.put(
        limit_stream(chunks, limit, field="file"),
        filename=filename,
        content_type=content_type,
        resource_type=resource_type_for(content_type),
    )


def _check_declared_length(request: Request, limit: int, overhead: int = 0) -> None:
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit + overhead:
        raise PayloadTooLargeError(size=int(declared), limit=limit, field="file")


@router.post("/upload")
async def upload(
    request: Request,
    object_store: ObjectStore = Depends(get_object_store),
    media_config: MediaConfig = Depends(get_media_config),
):
    """上传文件到 Object Store

    - 200: {success, url, videoUrl, filename, size, resourceType}
    - 400: 没有文件 / 超过上传上限
    - 500: 上传失败
    """
    limit = media_config.upload_max_bytes
    request_type = request.headers.get("content-type", "")

    if request_type.startswith("multipart/form-data"):
        _check_declared_length(request, limit, _MULTIPART_OVERHEAD)
        # 退出时关闭表单中的临时文件
        async with request.form(max_files=1) as form:
            file = form.get("file")
            if not isinstance(file, UploadFile):
                raise MissingFieldError("file")
            filename = file.filename or "upload"
            content_type = file.content_type or "application/octet-stream"
            stored = await _store(
                object_store, _iter_upload_file(file), filename, content_type, limit
            )
    else:
        _check_declared_length(request, limit)
        stream = request.stream()
        first = b""
        async for chunk in stream:
            if chunk:
                first = chunk
                break
        if not first:
            raise MissingFieldError("file")
        filename = (
            request.headers.get("X-Filename")
            or request.query_params.get("filename")
            or "upload"
        )
        content_type = request_type.split(";")[0].strip() or "application/octet-stream"
        stored = await _store(
            object_store, _iter_body(first, stream), filename, content_type, limit
        )

    log.info(
        "file_uploaded",
        filename=filename,
        size=stored.size,
        resource_type=stored.resource_type,
        url=stored.url,
    )
    return {
        "success": True,
        "url": stored.url,
        # 旧客户端读取 videoUrl
        "videoUrl": stored.url,
        "filename": filename,
        "size": stored.size,
        "resourceType": stored.resource_type,
    }
