"""Content accepted by ``Files.write``, resolved once into bytes or a stream."""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, AsyncIterator, Union

from .exceptions import BadArgumentError

CHUNK_SIZE = 65536


@dataclass(frozen=True)
class BytesContent:
    """In-memory content.

    Attributes:
        data: The bytes to write (text is UTF-8 encoded).
    """
    data: bytes


@dataclass(frozen=True)
class StreamContent:
    """Streamed content.

    Attributes:
        chunks: Async iterator yielding ``bytes`` chunks.
    """
    chunks: AsyncIterator[bytes]


Content = Union[BytesContent, StreamContent]


def resolve_content(content: Any) -> Content:
    """Classify a user-supplied write argument.

    Accepts ``str`` (UTF-8), ``bytes``/``bytearray``/``memoryview``, an
    object with an async ``read()`` (e.g. an ``aiofiles`` handle), an async
    iterable of bytes, or a binary file object with a sync ``read()``.

    Raises:
        BadArgumentError: If *content* is none of the above.
    """
    if isinstance(content, str):
        return BytesContent(content.encode("utf-8"))
    if isinstance(content, (bytes, bytearray, memoryview)):
        return BytesContent(bytes(content))
    read = getattr(content, "read", None)
    if read is not None and inspect.iscoroutinefunction(read):
        return StreamContent(_read_async(content))
    if hasattr(content, "__aiter__"):
        return StreamContent(_iter_async(content))
    if callable(read):
        return StreamContent(_read_sync(content))
    raise BadArgumentError(
        f"content must be str, bytes or a stream, got {type(content).__name__}",
        details={"content": type(content).__name__},
    )


def _as_bytes(chunk) -> bytes:
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    return bytes(chunk)


async def _read_async(f) -> AsyncIterator[bytes]:
    while True:
        chunk = await f.read(CHUNK_SIZE)
        if not chunk:
            break
        yield _as_bytes(chunk)


async def _iter_async(it) -> AsyncIterator[bytes]:
    async for chunk in it:
        if chunk:
            yield _as_bytes(chunk)


async def _read_sync(f) -> AsyncIterator[bytes]:
    while True:
        chunk = await asyncio.to_thread(f.read, CHUNK_SIZE)
        if not chunk:
            break
        yield _as_bytes(chunk)


async def collect(chunks: AsyncIterator[bytes]) -> bytes:
    """Concatenate an async byte stream."""
    parts = []
    async for chunk in chunks:
        parts.append(chunk)
    return b"".join(parts)
