"""ChatRelay Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import ErrorCode, MediaKind
from .message import (
    MediaReference,
    Message,
    MessageDraft,
    PendingMessage,
    from_epoch_ms,
    new_message_id,
    to_epoch_ms,
)

__all__ = [
    # 枚举
    "MediaKind",
    "ErrorCode",
    # Message
    "MessageDraft",
    "MediaReference",
    "PendingMessage",
    "Message",
    # 工具函数
    "new_message_id",
    "to_epoch_ms",
    "from_epoch_ms",
]
