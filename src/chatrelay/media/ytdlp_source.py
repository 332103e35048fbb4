"""YtDlpVideoSource -- 基于 yt-dlp 的 Video Source

- 元数据：yt_dlp.YoutubeDL.extract_info(download=False)，在线程中执行避免阻塞事件循环
- 视频流：对选中编码的直链发起 httpx 流式 GET
- 所有失败（私有、年龄/地区限制、已删除、网络错误）统一抛出 SourceUnavailableError
"""

import asyncio
import mimetypes
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import structlog
import yt_dlp
from chatrelay.core.exceptions import SourceUnavailableError
from yt_dlp.utils import YoutubeDLError

from .models import VideoFormat, VideoMetadata, VideoStream

log = structlog.get_logger()

_STREAM_CHUNK_SIZE = 256 * 1024

_YDL_BASE_OPTS = {
    "quiet": True,
    "no_warnings": True,
    "noplaylist": True,
    "skip_download": True,
}


def choose_format(formats: list[VideoFormat]) -> VideoFormat | None:
    """选择要转存的编码

    优先级：
    1. 音视频合一的 mp4（兼容性最好），取分辨率最高者
    2. 任意音视频合一的编码，取分辨率最高者
    3. 列表中的第一个编码
    """
    if not formats:
        return None

    combined = [f for f in formats if f.is_combined]
    combined_mp4 = [f for f in combined if f.ext == "mp4"]
    for candidates in (combined_mp4, combined):
        if candidates:
            return max(candidates, key=lambda f: f.height or 0)
    return formats[0]


def _parse_formats(info: dict) -> list[VideoFormat]:
    """把 yt-dlp info dict 中的 formats 转换为 VideoFormat 列表"""
    raw_formats = info.get("formats") or []
    # 单一编码的站点不提供 formats 列表，直链在顶层
    if not raw_formats and info.get("url"):
        raw_formats = [info]

    formats = []
    for raw in raw_formats:
        url = raw.get("url")
        if not url or raw.get("protocol", "https").startswith(("m3u8", "http_dash")):
            continue
        formats.append(
            VideoFormat(
                format_id=str(raw.get("format_id") or ""),
                url=url,
                ext=raw.get("ext") or "mp4",
                vcodec=raw.get("vcodec") or "none",
                acodec=raw.get("acodec") or "none",
                height=raw.get("height"),
                filesize=raw.get("filesize") or raw.get("filesize_approx"),
                http_headers=raw.get("http_headers") or {},
            )
        )
    return formats


class YtDlpVideoSource:
    """VideoSource 的 yt-dlp 实现"""

    def __init__(
        self,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            timeout=timeout_s,
            follow_redirects=True,
            transport=transport,
        )
        # 线程中的解析无法随请求取消，socket 超时限定其持续时间
        self._ydl_opts = {**_YDL_BASE_OPTS, "socket_timeout": timeout_s}

    def _extract_info(self, url: str) -> dict:
        with yt_dlp.YoutubeDL(self._ydl_opts) as ydl:
            info = ydl.extract_info(url, download=False)
            if not info:
                raise SourceUnavailableError(f"no video info returned for {url}")
            return ydl.sanitize_info(info)

    async def fetch_metadata(self, url: str) -> VideoMetadata:
        """获取视频元数据

        Raises:
            SourceUnavailableError: 解析失败
        """
        try:
            info = await asyncio.to_thread(self._extract_info, url)
        except (YoutubeDLError, OSError) as e:
            log.warning("video_metadata_failed", url=url, error=str(e))
            raise SourceUnavailableError(f"cannot fetch video info: {e}") from e

        formats = _parse_formats(info)
        if not formats:
            raise SourceUnavailableError(f"no downloadable format for {url}")

        return VideoMetadata(
            title=info.get("title") or "",
            duration_s=info.get("duration"),
            webpage_url=info.get("webpage_url") or url,
            formats=formats,
        )

    @asynccontextmanager
    async def open_stream(self, fmt: VideoFormat) -> AsyncIterator[VideoStream]:
        """打开指定编码的直链，退出上下文时关闭连接

        Raises:
            SourceUnavailableError: 直链请求失败或读取中断
        """
        request = self._client.build_request("GET", fmt.url, headers=fmt.http_headers)
        try:
            resp = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise SourceUnavailableError(f"cannot open video stream: {e}") from e

        try:
            if resp.status_code >= 400:
                raise SourceUnavailableError(
                    f"video stream returned HTTP {resp.status_code}"
                )

            content_type = resp.headers.get("content-type", "").split(";")[0].strip()
            if not content_type:
                content_type = mimetypes.guess_type(f"video.{fmt.ext}")[0] or "video/mp4"
            length = resp.headers.get("content-length")

            async def chunks() -> AsyncIterator[bytes]:
                try:
                    async for chunk in resp.aiter_bytes(_STREAM_CHUNK_SIZE):
                        yield chunk
                except httpx.HTTPError as e:
                    raise SourceUnavailableError(f"video stream interrupted: {e}") from e

            yield VideoStream(
                content_type=content_type,
                ext=fmt.ext,
                content_length=int(length) if length and length.isdigit() else None,
                chunks=chunks(),
            )
        finally:
            await resp.aclose()

    async def health_check(self) -> bool:
        """yt-dlp 为本地库，可导入即视为可用"""
        return True

    async def close(self) -> None:
        await self._client.aclose()
