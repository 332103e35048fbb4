"""LocalObjectStore -- 本地文件系统 Object Store

文件写入 media 目录，由 gateway 以 /media 静态路由对外提供。
开发与测试环境使用，不依赖任何外部服务。
"""

import asyncio
import mimetypes
from collections.abc import AsyncIterator
from pathlib import Path

import structlog
from chatrelay.core.exceptions import UploadFailedError
from ulid import ULID

from .models import StoredObject

log = structlog.get_logger()


def _pick_suffix(filename: str, content_type: str) -> str:
    """优先使用原文件名后缀，其次按 MIME 推断"""
    suffix = Path(filename).suffix.lower()
    if suffix and len(suffix) <= 10 and suffix[1:].isalnum():
        return suffix
    return mimetypes.guess_extension(content_type or "") or ".bin"


class LocalObjectStore:
    """Object Store 的本地文件系统实现"""

    def __init__(self, media_dir: str | Path, public_base_url: str) -> None:
        self._media_dir = Path(media_dir)
        self._public_base_url = public_base_url.rstrip("/")

    @property
    def media_dir(self) -> Path:
        return self._media_dir

    async def put(
        self,
        chunks: AsyncIterator[bytes],
        *,
        filename: str,
        content_type: str,
        resource_type: str = "auto",
    ) -> StoredObject:
        """流式写入文件，失败或取消时删除残留文件"""
        public_id = f"{ULID()}{_pick_suffix(filename, content_type)}"
        path = self._media_dir / public_id
        size = 0
        try:
            self._media_dir.mkdir(parents=True, exist_ok=True)
            with path.open("wb") as fh:
                async for chunk in chunks:
                    await asyncio.to_thread(fh.write, chunk)
                    size += len(chunk)
        except OSError as e:
            path.unlink(missing_ok=True)
            raise UploadFailedError(f"cannot write {public_id}: {e}") from e
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        log.info("object_stored", backend="local", public_id=public_id, size=size)
        return StoredObject(
            url=f"{self._public_base_url}/media/{public_id}",
            public_id=public_id,
            size=size,
            resource_type=resource_type,
        )

    async def health_check(self) -> bool:
        """目录可创建即视为可用"""
        try:
            self._media_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return self._media_dir.is_dir()

    async def close(self) -> None:
        return None
