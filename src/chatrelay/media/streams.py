"""字节流工具"""

from collections.abc import AsyncIterator

from chatrelay.core.exceptions import PayloadTooLargeError


async def limit_stream(
    chunks: AsyncIterator[bytes],
    max_bytes: int,
    field: str = "file",
) -> AsyncIterator[bytes]:
    """透传字节流，累计超过 max_bytes 时抛出 PayloadTooLargeError"""
    total = 0
    async for chunk in chunks:
        total += len(chunk)
        if total > max_bytes:
            raise PayloadTooLargeError(size=total, limit=max_bytes, field=field)
        yield chunk


async def iter_bytes(data: bytes, chunk_size: int = 1024 * 1024) -> AsyncIterator[bytes]:
    """把内存中的 bytes 切分为异步字节流"""
    for start in range(0, len(data), chunk_size):
        yield data[start:start + chunk_size]
