"""枚举定义

包含 MediaKind 媒体引用类型与 ErrorCode 错误码。
"""

from enum import StrEnum


class MediaKind(StrEnum):
    """media 字段的解释方式"""

    NONE = "none"
    # 请求体内嵌的 base64 / data URI
    INLINE = "inline"
    # 外部托管内容的 URL
    URL = "url"


class ErrorCode(StrEnum):
    """错误码 -- HTTP 响应体 error.code"""

    MISSING_FIELD = "MISSING_FIELD"
    EMPTY_MESSAGE = "EMPTY_MESSAGE"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    INVALID_TIMESTAMP = "INVALID_TIMESTAMP"
    INVALID_SOURCE_URL = "INVALID_SOURCE_URL"
    INVALID_MEDIA = "INVALID_MEDIA"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SOURCE_UNAVAILABLE = "SOURCE_UNAVAILABLE"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    INTERNAL = "INTERNAL"
