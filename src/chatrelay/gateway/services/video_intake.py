"""VideoIntake -- 远程视频转存编排

线性状态机，不做任何自动重试：
IDLE -> URL_VALIDATED -> METADATA_FETCHED -> STREAM_OPENED -> UPLOADED -> MESSAGE_RECORDED

任一状态失败都回到 IDLE 并抛出对应的类型化异常：
- URL_VALIDATED 之前：InvalidSourceUrlError / 其他校验错误
- METADATA_FETCHED、STREAM_OPENED 之前：SourceUnavailableError
- UPLOADED 之前：UploadFailedError
整体耗时受 timeout_s 约束；每个请求一个 IntakeRun，互不共享状态。
"""

import asyncio
from contextlib import aclosing
from enum import StrEnum
from urllib.parse import urlsplit

import structlog
from chatrelay.core.exceptions import (
    InvalidSourceUrlError,
    MissingFieldError,
    SourceUnavailableError,
    UploadFailedError,
)
from chatrelay.core.ingest import MessageIngestor
from chatrelay.core.models import MediaKind, Message, MessageDraft
from chatrelay.media import ObjectStore, VideoSource, choose_format, limit_stream
from chatrelay.media.models import StoredObject, VideoMetadata

log = structlog.get_logger()


class IntakeState(StrEnum):
    """远程视频转存状态"""

    IDLE = "IDLE"
    URL_VALIDATED = "URL_VALIDATED"
    METADATA_FETCHED = "METADATA_FETCHED"
    STREAM_OPENED = "STREAM_OPENED"
    UPLOADED = "UPLOADED"
    MESSAGE_RECORDED = "MESSAGE_RECORDED"


def validate_source_url(url: str | None, allowed_hosts: tuple[str, ...]) -> str:
    """校验分享链接：http(s) 且域名属于允许的视频站点（含子域名）

    Raises:
        MissingFieldError: url 为空
        InvalidSourceUrlError: scheme 或域名不符合
    """
    if url is None or not url.strip():
        raise MissingFieldError("sourceUrl")
    url = url.strip()

    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise InvalidSourceUrlError(url, reason="malformed URL") from e

    if parts.scheme not in ("http", "https"):
        raise InvalidSourceUrlError(url, reason="URL must use http or https")

    host = (parts.hostname or "").lower()
    if not any(host == h or host.endswith(f".{h}") for h in allowed_hosts):
        raise InvalidSourceUrlError(url)
    return url


class IntakeRun:
    """单次远程视频转存的执行过程"""

    def __init__(self, intake: "VideoIntake", draft: MessageDraft) -> None:
        self._intake = intake
        self._draft = draft
        self.state = IntakeState.IDLE
        self.history: list[IntakeState] = [IntakeState.IDLE]
        self.failed_state: IntakeState | None = None
        self.metadata: VideoMetadata | None = None
        self.stored: StoredObject | None = None

    def _advance(self, state: IntakeState) -> None:
        self.state = state
        self.history.append(state)
        log.info("video_intake_state", state=state.value, source_url=self._draft.source_url)

    def _fail(self, error: BaseException) -> None:
        self.failed_state = self.state
        log.warning(
            "video_intake_failed",
            failed_state=self.state.value,
            error_type=type(error).__name__,
            error=str(error),
            source_url=self._draft.source_url,
        )
        self.state = IntakeState.IDLE
        self.history.append(IntakeState.IDLE)

    async def execute(self) -> Message:
        """执行完整流程，成功时返回新写入的消息

        Raises:
            MessageValidationError: URL / username / timestamp 校验失败
            SourceUnavailableError: 元数据获取或视频流打开失败
            UploadFailedError: 上传失败
            StoreUnavailableError: 写入消息失败
        """
        intake = self._intake
        try:
            source_url = validate_source_url(self._draft.source_url, intake.allowed_hosts)
            draft = self._draft.model_copy(update={"source_url": source_url})
            # 先校验 username / timestamp，避免无效请求触发外部下载
            intake.ingestor.normalize(draft)
            self._advance(IntakeState.URL_VALIDATED)

            try:
                async with asyncio.timeout(intake.timeout_s):
                    metadata, stored = await self._fetch_and_upload(source_url)
            except TimeoutError as e:
                if self.state == IntakeState.STREAM_OPENED:
                    raise UploadFailedError(
                        f"upload did not finish within {intake.timeout_s}s"
                    ) from e
                raise SourceUnavailableError(
                    f"video source did not respond within {intake.timeout_s}s"
                ) from e

            message = await intake.ingestor.ingest(
                draft.model_copy(
                    update={
                        "media": stored.url,
                        "media_kind": MediaKind.URL,
                        "source_title": metadata.title or None,
                    }
                )
            )
            self._advance(IntakeState.MESSAGE_RECORDED)
            return message
        except (Exception, asyncio.CancelledError) as e:
            self._fail(e)
            raise

    async def _fetch_and_upload(self, source_url: str) -> tuple[VideoMetadata, StoredObject]:
        intake = self._intake

        metadata = await intake.video_source.fetch_metadata(source_url)
        self.metadata = metadata
        self._advance(IntakeState.METADATA_FETCHED)

        fmt = choose_format(metadata.formats)
        if fmt is None:
            raise SourceUnavailableError(f"no downloadable format for {source_url}")

        async with intake.video_source.open_stream(fmt) as stream:
            self._advance(IntakeState.STREAM_OPENED)
            async with aclosing(
                limit_stream(stream.chunks, intake.max_bytes, field="sourceUrl")
            ) as chunks:
                stored = await intake.object_store.put(
                    chunks,
                    filename=f"{fmt.format_id or 'video'}.{stream.ext}",
                    content_type=stream.content_type,
                    resource_type="video",
                )
        self.stored = stored
        self._advance(IntakeState.UPLOADED)
        return metadata, stored


class VideoIntake:
    """远程视频转存服务（无状态，可被多个请求并发使用）"""

    def __init__(
        self,
        ingestor: MessageIngestor,
        video_source: VideoSource,
        object_store: ObjectStore,
        allowed_hosts: tuple[str, ...],
        timeout_s: float = 120.0,
        max_bytes: int = 100 * 1024 * 1024,
    ) -> None:
        self.ingestor = ingestor
        self.video_source = video_source
        self.object_store = object_store
        self.allowed_hosts = allowed_hosts
        self.timeout_s = timeout_s
        self.max_bytes = max_bytes

    def new_run(self, draft: MessageDraft) -> IntakeRun:
        return IntakeRun(self, draft)

    async def run(self, draft: MessageDraft) -> Message:
        """执行一次远程视频转存"""
        return await self.new_run(draft).execute()
