"""In-memory backend, the reference implementation of :class:`Backend`."""

from __future__ import annotations

import hashlib
import hmac
import logging
import mimetypes
from datetime import datetime, timezone
from typing import AsyncIterator
from urllib.parse import quote, urlencode

from ..backend import MAX_LIST_RESULTS, Backend, FileDescriptor, WriteSink
from ..paths import PUBLIC_PREFIX, is_public

logger = logging.getLogger(__name__)

__all__ = ["MemoryBackend", "MemoryBackendError"]


class MemoryBackendError(Exception):
    """Native error of :class:`MemoryBackend`, carrying an HTTP-like status."""

    def __init__(self, status: int, message: str = ""):
        super().__init__(message or f"status {status}")
        self.status = status


class _Blob:
    __slots__ = ("data", "content_type", "created", "modified", "etag")

    def __init__(self, data: bytes, content_type: str | None):
        now = datetime.now(timezone.utc)
        self.data = data
        self.content_type = content_type
        self.created = now
        self.modified = now
        self.etag = '"' + hashlib.md5(data).hexdigest() + '"'


class _MemoryWriteSink(WriteSink):
    def __init__(self, backend: MemoryBackend, path: str):
        self._backend = backend
        self._path = path
        self._parts: list[bytes] = []
        self._closed = False

    async def write(self, chunk: bytes) -> None:
        if self._closed:
            raise MemoryBackendError(400, "write after close")
        self._parts.append(bytes(chunk))

    async def close(self) -> int:
        if self._closed:
            return len(self._backend._blobs[self._path].data)
        self._closed = True
        return self._backend._put(self._path, b"".join(self._parts))


class MemoryBackend(Backend):
    """Dict-backed storage.

    Provider failures are raised as :class:`MemoryBackendError` with status
    404 (missing file) or 416 (read position past the end).  Presigned URLs
    are deterministic HMAC-signed query strings; revoking bumps an epoch
    that is folded into the signature.

    Args:
        public_prefix: First path segment that marks public files.
        max_results: Listing cap per :meth:`list_folder` call.
        base_url: Prefix of the URLs returned by :meth:`url_for`.
    """

    def __init__(self, public_prefix: str = PUBLIC_PREFIX, *,
                 max_results: int = MAX_LIST_RESULTS,
                 base_url: str = "memory://files"):
        self.public_prefix = public_prefix
        self.max_list_results = max_results
        self.base_url = base_url.rstrip("/")
        self._blobs: dict[str, _Blob] = {}
        self._epoch = 0
        self._secret = b"blobfiles-memory"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get(self, path: str) -> _Blob:
        try:
            return self._blobs[path]
        except KeyError:
            raise MemoryBackendError(404, f"no such file: {path}") from None

    def _put(self, path: str, data: bytes) -> int:
        old = self._blobs.get(path)
        blob = _Blob(data, mimetypes.guess_type(path)[0])
        if old is not None:
            blob.created = old.created
        self._blobs[path] = blob
        logger.debug("stored %s (%d bytes)", path, len(data))
        return len(data)

    def _descriptor(self, path: str, blob: _Blob) -> FileDescriptor:
        return FileDescriptor(
            name=path,
            is_directory=False,
            is_public=is_public(path, self.public_prefix),
            url=self.url_for(path),
            content_length=len(blob.data),
            content_type=blob.content_type,
            etag=blob.etag,
            last_modified=blob.modified,
            creation_time=blob.created,
        )

    def _sign(self, path: str, expiry: int, permissions: str) -> str:
        msg = f"{path}\n{expiry}\n{permissions}\n{self._epoch}".encode()
        return hmac.new(self._secret, msg, hashlib.sha256).hexdigest()

    # ------------------------------------------------------------------
    # Backend contract
    # ------------------------------------------------------------------

    async def exists(self, path: str) -> bool:
        return path in self._blobs

    async def get_file_info(self, path: str) -> FileDescriptor:
        return self._descriptor(path, self._get(path))

    async def list_folder(self, path: str) -> list[FileDescriptor]:
        prefix = "" if path in ("", "/") else path
        if prefix and not prefix.endswith("/"):
            prefix += "/"
        names = sorted(n for n in self._blobs if n.startswith(prefix))
        return [self._descriptor(n, self._blobs[n])
                for n in names[:self.max_list_results]]

    async def delete(self, path: str) -> None:
        self._get(path)
        del self._blobs[path]

    async def open_read(self, path: str, position: int | None = None,
                        length: int | None = None) -> AsyncIterator[bytes]:
        data = self._get(path).data
        start = position or 0
        if start > len(data):
            raise MemoryBackendError(416, f"position {start} past end of {path}")
        end = len(data) if length is None else start + length
        if end > start:
            yield data[start:end]

    async def open_write(self, path: str) -> WriteSink:
        return _MemoryWriteSink(self, path)

    async def write_stream(self, path: str, chunks: AsyncIterator[bytes]) -> int:
        async with await self.open_write(path) as sink:
            async for chunk in chunks:
                await sink.write(chunk)
        return len(self._blobs[path].data)

    async def write_buffer(self, path: str, data: bytes) -> int:
        return self._put(path, bytes(data))

    async def copy_remote_to_remote_file(self, src: str, dest: str) -> None:
        self._put(dest, self._get(src).data)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{quote(path)}"

    async def presign_url(self, path: str, expiry_in_seconds: int,
                          permissions: str) -> str:
        query = urlencode({
            "se": expiry_in_seconds,
            "sp": permissions,
            "sig": self._sign(path, expiry_in_seconds, permissions),
        })
        return f"{self.url_for(path)}?{query}"

    async def revoke_presign_urls(self) -> None:
        self._epoch += 1

    def status_from_error(self, exc: BaseException) -> int | None:
        return getattr(exc, "status", None)
