"""Message Ingestion Pipeline -- 校验、规范化、持久化

ingest(draft) 按顺序执行以下步骤，任一步失败立即返回，不产生写入：
1. username 非空检查                 -> MissingFieldError
2. text / media / sourceUrl 至少一项  -> EmptyMessageError
3. 去除首尾空白并按上限截断（截断而非拒绝）
4. inline 媒体大小上限                -> PayloadTooLargeError
5. timestamp 规范化（epoch 毫秒 / ISO-8601 / 缺省为当前时间） -> InvalidTimestampError
6-7. 交给 Record Store append，由 Store 分配 ID 并一次性写入
"""

import math
import re
from datetime import UTC, datetime

import structlog

from .config import MESSAGE_PREVIEW_LENGTH, IngestLimits
from .exceptions import EmptyMessageError, InvalidTimestampError, MissingFieldError
from .media import MediaResolver
from .models.enums import MediaKind
from .models.message import Message, MessageDraft, PendingMessage, from_epoch_ms
from .store.protocols import MessageStore

log = structlog.get_logger()

# 合法时刻范围：0001-01-01 .. 9999-12-31（epoch 毫秒）
_MIN_EPOCH_MS = -62135596800000
_MAX_EPOCH_MS = 253402300799999
_EPOCH_MS_RE = re.compile(r"-?\d+")


def _clean(value: str | None, max_chars: int) -> str | None:
    """去除首尾空白并截断，空串视为缺失"""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    return value[:max_chars]


def _truncate_to_ms(ts: datetime) -> datetime:
    return ts.replace(microsecond=ts.microsecond - ts.microsecond % 1000)


def normalize_timestamp(value: object, now: datetime | None = None) -> datetime:
    """把客户端 timestamp 规范化为 UTC datetime（毫秒精度）

    接受:
        - None: 当前服务端时间
        - int / 整数值 float: epoch 毫秒
        - 纯数字字符串: epoch 毫秒
        - ISO-8601 字符串: 无时区信息时按 UTC 处理

    Raises:
        InvalidTimestampError: 无法解析或超出合法时刻范围
    """
    if value is None:
        return _truncate_to_ms(now or datetime.now(UTC))

    # bool 是 int 的子类，单独排除
    if isinstance(value, bool):
        raise InvalidTimestampError(value)

    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise InvalidTimestampError(value)
        value = int(value)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidTimestampError(value)
        if _EPOCH_MS_RE.fullmatch(text):
            value = int(text)
        else:
            try:
                parsed = datetime.fromisoformat(text)
                if parsed.tzinfo is None:
                    parsed = parsed.replace(tzinfo=UTC)
                return _truncate_to_ms(parsed.astimezone(UTC))
            except (ValueError, OverflowError) as e:
                raise InvalidTimestampError(value) from e

    if isinstance(value, int):
        if not _MIN_EPOCH_MS <= value <= _MAX_EPOCH_MS:
            raise InvalidTimestampError(value)
        try:
            return from_epoch_ms(value)
        except OverflowError as e:
            raise InvalidTimestampError(value) from e

    raise InvalidTimestampError(value)


class MessageIngestor:
    """消息入库流水线

    Store 通过构造函数注入，流水线自身不持有任何可变状态。
    """

    def __init__(
        self,
        store: MessageStore,
        limits: IngestLimits | None = None,
        resolver: MediaResolver | None = None,
    ) -> None:
        self._store = store
        self._limits = limits or IngestLimits()
        self._resolver = resolver or MediaResolver(self._limits.inline_media_max_bytes)

    @property
    def limits(self) -> IngestLimits:
        return self._limits

    def normalize(self, draft: MessageDraft, now: datetime | None = None) -> PendingMessage:
        """执行步骤 1-5，返回待写入记录（不触碰 Store）"""
        limits = self._limits

        # 1. username
        username = _clean(draft.username, limits.username_max_chars)
        if username is None:
            raise MissingFieldError("username")

        # 旧客户端字段映射：videoUrl -> url 媒体，image -> 按 scheme 判别
        media_value = draft.media
        media_kind = draft.media_kind
        if not (media_value and media_value.strip()):
            if draft.video_url and draft.video_url.strip():
                media_value, media_kind = draft.video_url, MediaKind.URL
            elif draft.image and draft.image.strip():
                media_value = draft.image

        # 2. 内容检查（空白文本视为缺失）
        text = _clean(draft.text, limits.text_max_chars)
        source_url = _clean(draft.source_url, limits.source_url_max_chars)
        has_media = bool(media_value and media_value.strip()) and media_kind != MediaKind.NONE
        if text is None and not has_media and source_url is None:
            raise EmptyMessageError()

        # 3. 其余字段清理
        device = _clean(draft.device, limits.device_max_chars)
        source_title = _clean(draft.source_title, limits.source_title_max_chars)

        # 4. 媒体解析 + 大小策略
        media_ref = self._resolver.resolve(media_value, media_kind)

        # 5. timestamp
        timestamp = normalize_timestamp(draft.timestamp, now=now)

        return PendingMessage(
            username=username,
            text=text,
            media=media_ref.value if media_ref else None,
            media_kind=media_ref.kind if media_ref else MediaKind.NONE,
            device=device,
            source_url=source_url,
            source_title=source_title,
            timestamp=timestamp,
        )

    async def ingest(self, draft: MessageDraft) -> Message:
        """校验 + 规范化 + 写入，成功时恰好一次持久化写入

        Raises:
            MessageValidationError: 校验失败（未写入）
            StoreUnavailableError: Store 后端不可用
        """
        pending = self.normalize(draft)
        message = await self._store.append(pending)

        log.info(
            "message_ingested",
            message_id=message.id,
            username=message.username,
            media_kind=message.media_kind.value,
            preview=(message.text or "")[:MESSAGE_PREVIEW_LENGTH],
        )
        return message
