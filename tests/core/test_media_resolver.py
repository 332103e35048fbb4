"""MediaResolver 单元测试"""

import base64

import pytest
from chatrelay.core.exceptions import InvalidMediaError, PayloadTooLargeError
from chatrelay.core.media import MediaResolver, base64_decoded_size
from chatrelay.core.models import MediaKind


def _data_uri(payload: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(payload).decode()}"


class TestBase64DecodedSize:
    """base64 解码后字节数计算"""

    @pytest.mark.parametrize("size", [0, 1, 2, 3, 4, 5, 100, 1001])
    def test_matches_real_decode(self, size):
        encoded = base64.b64encode(b"x" * size).decode()
        assert base64_decoded_size(encoded) == size

    def test_ignores_line_breaks(self):
        encoded = base64.encodebytes(b"y" * 200).decode()
        assert "\n" in encoded
        assert base64_decoded_size(encoded) == 200


class TestResolve:
    """media 字段解析"""

    @pytest.fixture
    def resolver(self) -> MediaResolver:
        return MediaResolver(inline_max_bytes=16)

    def test_empty_values(self, resolver):
        assert resolver.resolve(None) is None
        assert resolver.resolve("") is None
        assert resolver.resolve("   ") is None

    def test_explicit_none_kind_drops_value(self, resolver):
        assert resolver.resolve("https://cdn.example.com/a.png", MediaKind.NONE) is None

    def test_url_inferred_from_scheme(self, resolver):
        ref = resolver.resolve("https://cdn.example.com/a.mp4")
        assert ref.kind == MediaKind.URL
        assert ref.value == "https://cdn.example.com/a.mp4"
        assert ref.size == 0

    def test_large_url_not_size_checked(self, resolver):
        url = "https://cdn.example.com/" + "a" * 1000
        assert resolver.resolve(url).kind == MediaKind.URL

    def test_inline_data_uri(self, resolver):
        value = _data_uri(b"\x89PNG1234")
        ref = resolver.resolve(value)
        assert ref.kind == MediaKind.INLINE
        assert ref.value == value
        assert ref.size == 8
        assert ref.mime == "image/png"

    def test_inline_at_limit_accepted(self, resolver):
        ref = resolver.resolve(_data_uri(b"a" * 16))
        assert ref.size == 16

    def test_inline_over_limit_rejected(self, resolver):
        with pytest.raises(PayloadTooLargeError) as exc_info:
            resolver.resolve(_data_uri(b"a" * 17))
        assert exc_info.value.size == 17
        assert exc_info.value.limit == 16
        assert exc_info.value.field == "media"

    def test_plain_data_uri_counts_utf8_bytes(self, resolver):
        ref = resolver.resolve("data:text/plain,hello")
        assert ref.kind == MediaKind.INLINE
        assert ref.size == 5
        assert ref.mime == "text/plain"

    def test_raw_base64_without_prefix(self, resolver):
        ref = resolver.resolve(base64.b64encode(b"abcd").decode())
        assert ref.kind == MediaKind.INLINE
        assert ref.size == 4
        assert ref.mime == ""

    def test_declared_url_must_be_http(self, resolver):
        with pytest.raises(InvalidMediaError):
            resolver.resolve(_data_uri(b"abc"), MediaKind.URL)

    def test_declared_inline_keeps_url_text(self, resolver):
        """显式声明 inline 时不按 scheme 改判"""
        ref = resolver.resolve("https://x.io", MediaKind.INLINE)
        assert ref.kind == MediaKind.INLINE
