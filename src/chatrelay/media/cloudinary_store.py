"""CloudinaryObjectStore -- Cloudinary 分片上传封装

通过 httpx 调用 Cloudinary Upload API：
- 签名参数 = sha1("folder=...&timestamp=..." + api_secret)
- 分片上传：同一 X-Unique-Upload-Id，每片携带 Content-Range
- 总长度未知的中间分片使用 "/-1"，最后一批分片携带真实总长度
- 内存中最多缓冲一个分片 + 一个预读分片，不整体读入源文件
"""

import hashlib
import time
from collections.abc import AsyncIterator

import httpx
import structlog
from chatrelay.core.exceptions import UploadFailedError
from ulid import ULID

from .models import StoredObject

log = structlog.get_logger()

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"

# Cloudinary 要求除最后一片外每片不小于 5 MB
DEFAULT_CHUNK_SIZE = 20 * 1024 * 1024

HEALTH_CHECK_TIMEOUT_S = 5


def sign_params(params: dict[str, str], api_secret: str) -> str:
    """计算 Cloudinary 请求签名"""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] != "")
    return hashlib.sha1(f"{to_sign}{api_secret}".encode()).hexdigest()


class CloudinaryObjectStore:
    """Object Store 的 Cloudinary 实现"""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "chatroom_videos",
        timeout_s: float = 30.0,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        api_base: str = CLOUDINARY_API_BASE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            cloud_name: Cloudinary cloud name
            api_key: API key
            api_secret: API secret（仅用于签名，不随请求发送）
            folder: 上传目录
            timeout_s: 单个分片请求超时（秒）
            chunk_size: 分片大小（字节）
            api_base: API 基础地址
            transport: 自定义 httpx transport（测试注入）
        """
        self._cloud_name = cloud_name
        self._api_key = api_key
        self._api_secret = api_secret
        self._folder = folder
        self._chunk_size = chunk_size
        self._api_base = api_base.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout_s, transport=transport)

    def _upload_url(self, resource_type: str) -> str:
        return f"{self._api_base}/{self._cloud_name}/{resource_type}/upload"

    def _signed_params(self) -> dict[str, str]:
        params = {"folder": self._folder, "timestamp": str(int(time.time()))}
        params["signature"] = sign_params(params, self._api_secret)
        params["api_key"] = self._api_key
        return params

    async def _send_chunk(
        self,
        url: str,
        params: dict[str, str],
        upload_id: str,
        filename: str,
        content_type: str,
        data: bytes,
        start: int,
        total: int | None,
    ) -> dict:
        end = start + len(data) - 1
        headers = {
            "X-Unique-Upload-Id": upload_id,
            "Content-Range": f"bytes {start}-{end}/{total if total is not None else -1}",
        }
        try:
            resp = await self._client.post(
                url,
                data=params,
                files={"file": (filename, data, content_type or "application/octet-stream")},
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise UploadFailedError(f"cloudinary upload request failed: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if resp.status_code >= 400:
            error = body.get("error") if isinstance(body, dict) else None
            reason = error.get("message") if isinstance(error, dict) else error
            raise UploadFailedError(
                f"cloudinary upload rejected ({resp.status_code}): {reason or resp.text[:200]}"
            )
        return body if isinstance(body, dict) else {}

    async def put(
        self,
        chunks: AsyncIterator[bytes],
        *,
        filename: str,
        content_type: str,
        resource_type: str = "auto",
    ) -> StoredObject:
        """分片上传字节流

        Raises:
            UploadFailedError: 请求失败、被拒绝或返回内容缺少 URL
        """
        url = self._upload_url(resource_type)
        params = self._signed_params()
        upload_id = str(ULID())

        sent = 0
        buffer = bytearray()
        ready: bytes | None = None  # 已凑满、等待确认不是最后一片的分片
        result: dict = {}

        async for chunk in chunks:
            buffer.extend(chunk)
            while len(buffer) >= self._chunk_size:
                if ready is not None:
                    await self._send_chunk(
                        url, params, upload_id, filename, content_type, ready, sent, None
                    )
                    sent += len(ready)
                ready = bytes(buffer[: self._chunk_size])
                del buffer[: self._chunk_size]

        remaining = [part for part in (ready, bytes(buffer)) if part]
        if not remaining and sent == 0:
            raise UploadFailedError("nothing to upload: empty stream")

        total = sent + sum(len(part) for part in remaining)
        for part in remaining:
            result = await self._send_chunk(
                url, params, upload_id, filename, content_type, part, sent, total
            )
            sent += len(part)

        secure_url = result.get("secure_url") or result.get("url")
        if not secure_url:
            raise UploadFailedError("cloudinary response did not include a URL")

        log.info(
            "object_stored",
            backend="cloudinary",
            public_id=result.get("public_id", ""),
            size=total,
            upload_id=upload_id,
        )
        return StoredObject(
            url=secure_url,
            public_id=result.get("public_id", ""),
            size=int(result.get("bytes", total)),
            resource_type=result.get("resource_type", resource_type),
        )

    async def health_check(self) -> bool:
        """调用 Admin API ping 检查凭据与可达性"""
        try:
            resp = await self._client.get(
                f"{self._api_base}/{self._cloud_name}/ping",
                auth=(self._api_key, self._api_secret),
                timeout=HEALTH_CHECK_TIMEOUT_S,
            )
            return resp.status_code == 200
        except httpx.HTTPError as e:
            log.warning("cloudinary_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        await self._client.aclose()
