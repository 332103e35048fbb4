"""ChatRelay 异常体系

三类异常：
- MessageValidationError: 写入前的校验失败，请求方修正后可重试，服务端不重试
- CollaboratorError: Store / Object Store / Video Source 等外部依赖失败，直接上报调用方
- MessageNotFoundError: 按 ID 删除时目标不存在
"""

from .models.enums import ErrorCode


class ChatRelayError(Exception):
    """ChatRelay 基础异常"""

    code: ErrorCode = ErrorCode.INTERNAL

    def __init__(self, message: str, field: str | None = None) -> None:
        """
        Args:
            message: 错误描述（返回给调用方）
            field: 关联的请求字段（可选）
        """
        super().__init__(message)
        self.message = message
        self.field = field


class MessageValidationError(ChatRelayError):
    """入站请求校验失败（写入前检测，不产生任何持久化副作用）"""


class MissingFieldError(MessageValidationError):
    """必填字段缺失或为空"""

    code = ErrorCode.MISSING_FIELD

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} is required", field=field)


class EmptyMessageError(MessageValidationError):
    """text / media / sourceUrl 均为空"""

    code = ErrorCode.EMPTY_MESSAGE

    def __init__(self) -> None:
        super().__init__("message must carry at least one of text, media or sourceUrl")


class PayloadTooLargeError(MessageValidationError):
    """媒体内容超过大小上限"""

    code = ErrorCode.PAYLOAD_TOO_LARGE

    def __init__(self, size: int, limit: int, field: str = "media") -> None:
        super().__init__(
            f"{field} is {size} bytes, exceeds the {limit} byte limit",
            field=field,
        )
        self.size = size
        self.limit = limit


class InvalidTimestampError(MessageValidationError):
    """timestamp 无法解析为合法时刻"""

    code = ErrorCode.INVALID_TIMESTAMP

    def __init__(self, value: object) -> None:
        super().__init__(f"invalid timestamp: {value!r}", field="timestamp")


class InvalidSourceUrlError(MessageValidationError):
    """远程视频 URL 不符合支持的站点规则"""

    code = ErrorCode.INVALID_SOURCE_URL

    def __init__(self, url: str, reason: str = "unsupported video host") -> None:
        super().__init__(f"{reason}: {url}", field="sourceUrl")
        self.url = url


class InvalidMediaError(MessageValidationError):
    """media 字段与声明的 mediaKind 不匹配"""

    code = ErrorCode.INVALID_MEDIA

    def __init__(self, reason: str) -> None:
        super().__init__(reason, field="media")


class CollaboratorError(ChatRelayError):
    """外部依赖失败（不在服务端重试）"""


class SourceUnavailableError(CollaboratorError):
    """Video Source 无法提供元数据或视频流

    私有、年龄限制、地区限制、已删除等原因无法可靠区分，统一归为此类。
    """

    code = ErrorCode.SOURCE_UNAVAILABLE


class UploadFailedError(CollaboratorError):
    """Object Store 上传失败"""

    code = ErrorCode.UPLOAD_FAILED


class StoreUnavailableError(CollaboratorError):
    """Record Store 后端不可用（连接失败、连接池耗尽、已关闭）"""

    code = ErrorCode.STORE_UNAVAILABLE


class MessageNotFoundError(ChatRelayError):
    """消息不存在"""

    code = ErrorCode.NOT_FOUND

    def __init__(self, message_id: str) -> None:
        super().__init__(f"Message with id {message_id} does not exist", field="id")
        self.message_id = message_id
