"""外部协作方 Protocol 接口定义

ObjectStore: 接收字节流，返回可公开访问的 URL
VideoSource: 解析分享链接，提供元数据与可读视频流
"""

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager
from typing import Protocol

from .models import StoredObject, VideoFormat, VideoMetadata, VideoStream


class ObjectStore(Protocol):
    """Object Store 接口"""

    async def put(
        self,
        chunks: AsyncIterator[bytes],
        *,
        filename: str,
        content_type: str,
        resource_type: str = "auto",
    ) -> StoredObject:
        """上传字节流

        Raises:
            UploadFailedError: 上传失败
        """
        ...

    async def health_check(self) -> bool:
        """可达性检查"""
        ...

    async def close(self) -> None:
        ...


class VideoSource(Protocol):
    """Video Source 接口 -- 所有失败统一为 SourceUnavailableError"""

    async def fetch_metadata(self, url: str) -> VideoMetadata:
        """获取标题、时长与可用编码"""
        ...

    def open_stream(self, fmt: VideoFormat) -> AbstractAsyncContextManager[VideoStream]:
        """打开指定编码的流式读取，退出上下文时关闭"""
        ...

    async def health_check(self) -> bool:
        ...

    async def close(self) -> None:
        ...
