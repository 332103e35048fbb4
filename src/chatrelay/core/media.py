"""Media Reference Resolver

把入站 media 字段解析为 MediaReference：
- 判别依据是显式的 mediaKind，或值的 URI scheme（不嗅探内容字节）
- inline 内容按 base64 解码后的字节数校验大小上限
- 不做任何网络 I/O、转码或内容检查，外部托管内容只记录 URL
"""

import re

from .exceptions import InvalidMediaError, PayloadTooLargeError
from .models.enums import MediaKind
from .models.message import MediaReference

_URL_SCHEMES = ("http://", "https://")
_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^,;]*)*?),", re.I)


def base64_decoded_size(encoded: str) -> int:
    """根据 base64 文本长度计算解码后的字节数（不实际解码）"""
    # 忽略换行等空白
    encoded = encoded.rstrip()
    length = len(encoded) - encoded.count("\n") - encoded.count("\r")
    padding = 0
    if encoded.endswith("=="):
        padding = 2
    elif encoded.endswith("="):
        padding = 1
    return max(0, (length * 3) // 4 - padding)


def _split_data_uri(value: str) -> tuple[str, str, bool]:
    """拆分 data URI，返回 (mime, payload, is_base64)"""
    match = _DATA_URI_RE.match(value)
    if match is None:
        return "", value, True
    params = match.group("params") or ""
    is_base64 = ";base64" in params.lower()
    return match.group("mime") or "", value[match.end():], is_base64


class MediaResolver:
    """media 字段解析器"""

    def __init__(self, inline_max_bytes: int) -> None:
        """
        Args:
            inline_max_bytes: inline 内容解码后的最大字节数
        """
        self._inline_max_bytes = inline_max_bytes

    @property
    def inline_max_bytes(self) -> int:
        return self._inline_max_bytes

    def resolve(
        self,
        value: str | None,
        kind_hint: MediaKind | None = None,
    ) -> MediaReference | None:
        """解析 media 字段

        Args:
            value: 原始 media 字段
            kind_hint: 客户端声明的 mediaKind；None 时按 URI scheme 判别

        Returns:
            MediaReference；value 为空或 kind_hint 为 none 时返回 None

        Raises:
            PayloadTooLargeError: inline 内容超过上限
            InvalidMediaError: 声明为 url 但不是 http(s) 地址
        """
        if value is None:
            return None
        value = value.strip()
        if not value or kind_hint == MediaKind.NONE:
            return None

        kind = kind_hint or self._infer_kind(value)

        if kind == MediaKind.URL:
            if not value.lower().startswith(_URL_SCHEMES):
                raise InvalidMediaError("media declared as url must be an http(s) URL")
            return MediaReference(kind=MediaKind.URL, value=value)

        mime, payload, is_base64 = _split_data_uri(value)
        size = base64_decoded_size(payload) if is_base64 else len(payload.encode("utf-8"))
        if size > self._inline_max_bytes:
            raise PayloadTooLargeError(size=size, limit=self._inline_max_bytes)
        return MediaReference(kind=MediaKind.INLINE, value=value, size=size, mime=mime)

    @staticmethod
    def _infer_kind(value: str) -> MediaKind:
        if value.lower().startswith(_URL_SCHEMES):
            return MediaKind.URL
        return MediaKind.INLINE
