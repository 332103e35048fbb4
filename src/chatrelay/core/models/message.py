"""Message Domain Model

唯一的持久化实体。生命周期：由 Ingestion Pipeline 校验通过后创建，
创建后不可修改，只能按 ID 删除或批量清空。
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from ulid import ULID

from .enums import MediaKind

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def new_message_id() -> str:
    """生成消息 ID（ULID，26 字符）"""
    return str(ULID())


def to_epoch_ms(ts: datetime) -> int:
    """datetime -> epoch 毫秒（整数运算，向下取整到毫秒）"""
    delta = ts - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def from_epoch_ms(ms: int) -> datetime:
    """epoch 毫秒 -> UTC datetime"""
    return _EPOCH + timedelta(milliseconds=ms)


class MessageDraft(BaseModel):
    """入站消息草稿 -- 未经校验的原始请求字段

    字段类型保持宽松，校验与规范化全部在 MessageIngestor 中完成。
    同时接受 camelCase 与 snake_case 字段名；image / videoUrl 为旧客户端字段。
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    username: str | None = None
    text: str | None = None
    media: str | None = None
    media_kind: MediaKind | None = None
    device: str | None = None
    source_url: str | None = None
    source_title: str | None = None
    timestamp: Any = None
    image: str | None = None
    video_url: str | None = None


class MediaReference(BaseModel):
    """已通过大小/类型策略的媒体引用"""

    kind: MediaKind = Field(description="inline 或 url")
    value: str = Field(description="原样保存的 inline 内容或 URL")
    size: int = Field(default=0, description="inline 内容解码后的字节数，url 为 0")
    mime: str = Field(default="", description="data URI 声明的 MIME 类型")


class PendingMessage(BaseModel):
    """规范化完成、尚未分配 ID 的消息记录（由 Ingestion Pipeline 持有）"""

    username: str = Field(description="发送者名称，已去空白并截断")
    text: str | None = Field(default=None, description="文本内容")
    media: str | None = Field(default=None, description="inline 内容或外部 URL")
    media_kind: MediaKind = Field(default=MediaKind.NONE, description="media 的解释方式")
    device: str | None = Field(default=None, description="客户端标识")
    source_url: str | None = Field(default=None, description="远程视频原始链接")
    source_title: str | None = Field(default=None, description="远程视频标题")
    timestamp: datetime = Field(description="消息时间（UTC，毫秒精度）")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="服务端接收时间",
    )


class Message(PendingMessage):
    """已持久化的消息 -- id 由 Record Store 在 append 时分配，之后不再变更"""

    id: str = Field(description="唯一标识，ULID 格式")

    @property
    def timestamp_ms(self) -> int:
        return to_epoch_ms(self.timestamp)
