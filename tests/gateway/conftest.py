"""gateway 测试配置 -- 假 Object Store / Video Source + 手动初始化 app.state"""

import asyncio
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

import pytest_asyncio
from chatrelay.core.config import IngestLimits
from chatrelay.core.store import MemoryMessageStore
from chatrelay.gateway.main import create_app, init_app_state
from chatrelay.media import (
    MediaConfig,
    StoredObject,
    VideoFormat,
    VideoMetadata,
    VideoStream,
    iter_bytes,
)
from httpx import ASGITransport, AsyncClient


class FakeObjectStore:
    """记录上传内容的 Object Store"""

    def __init__(self) -> None:
        self.uploads: list[dict] = []
        self.fail_with: Exception | None = None
        self.healthy = True

    async def put(
        self,
        chunks: AsyncIterator[bytes],
        *,
        filename: str,
        content_type: str,
        resource_type: str = "auto",
    ) -> StoredObject:
        data = b""
        async for chunk in chunks:
            data += chunk
        if self.fail_with is not None:
            raise self.fail_with
        self.uploads.append(
            {
                "data": data,
                "filename": filename,
                "content_type": content_type,
                "resource_type": resource_type,
            }
        )
        return StoredObject(
            url=f"https://cdn.test/{len(self.uploads)}/{filename}",
            public_id=str(len(self.uploads)),
            size=len(data),
            resource_type=resource_type,
        )

    async def health_check(self) -> bool:
        return self.healthy

    async def close(self) -> None:
        return None


class FakeVideoSource:
    """可配置失败点与延迟的 Video Source"""

    def __init__(self) -> None:
        self.title = "A shared video"
        self.payload = b"fake-mp4-bytes"
        self.metadata_error: Exception | None = None
        self.stream_error: Exception | None = None
        self.metadata_delay_s = 0.0
        self.stream_delay_s = 0.0
        self.fetched: list[str] = []
        self.stream_closed = False

    async def fetch_metadata(self, url: str) -> VideoMetadata:
        self.fetched.append(url)
        if self.metadata_delay_s:
            await asyncio.sleep(self.metadata_delay_s)
        if self.metadata_error is not None:
            raise self.metadata_error
        return VideoMetadata(
            title=self.title,
            webpage_url=url,
            formats=[
                VideoFormat(
                    format_id="18",
                    url="https://media.test/18",
                    ext="mp4",
                    vcodec="avc1",
                    acodec="mp4a",
                    height=360,
                )
            ],
        )

    @asynccontextmanager
    async def open_stream(self, fmt: VideoFormat) -> AsyncIterator[VideoStream]:
        if self.stream_error is not None:
            raise self.stream_error

        async def chunks() -> AsyncIterator[bytes]:
            if self.stream_delay_s:
                await asyncio.sleep(self.stream_delay_s)
            async for chunk in iter_bytes(self.payload, 4):
                yield chunk

        try:
            yield VideoStream(
                content_type="video/mp4",
                ext=fmt.ext,
                content_length=len(self.payload),
                chunks=chunks(),
            )
        finally:
            self.stream_closed = True

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        return None


@pytest_asyncio.fixture
async def store() -> MemoryMessageStore:
    return MemoryMessageStore()


@pytest_asyncio.fixture
async def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest_asyncio.fixture
async def video_source() -> FakeVideoSource:
    return FakeVideoSource()


@pytest_asyncio.fixture
async def media_config(tmp_path) -> MediaConfig:
    return MediaConfig(
        media_dir=str(tmp_path / "media"),
        upload_max_bytes=1024,
        video_intake_timeout_s=2.0,
    )


@pytest_asyncio.fixture
async def app(store, object_store, video_source, media_config):
    """创建测试用 FastAPI app，手动初始化 lifespan 状态"""
    application = create_app()
    init_app_state(
        application,
        store,
        object_store,
        video_source,
        media_config=media_config,
        ingest_limits=IngestLimits(inline_media_max_bytes=64),
    )
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
