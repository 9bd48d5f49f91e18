"""Storage backend contract and the values it produces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import AsyncIterator

from .paths import PUBLIC_PREFIX

__all__ = [
    "Backend", "FileDescriptor", "FilePermissions", "FileProperties",
    "MAX_LIST_RESULTS", "WriteSink",
]

MAX_LIST_RESULTS = 1000


class FilePermissions(str, Enum):
    """Permission letters for presigned URLs; combine as strings (``"rwd"``)."""
    READ = "r"
    WRITE = "w"
    DELETE = "d"

    def __str__(self) -> str:          # noqa: D105
        return self.value


@dataclass(frozen=True)
class FileDescriptor:
    """A remote file or directory as reported by a backend.

    Attributes:
        name: Normalized remote path (directories end with ``/``).
        is_directory: True for directory entries.
        is_public: True when *name* is under the public prefix.
        url: Direct (unsigned) URL of the file.
        content_length: Size in bytes, when the backend knows it.
        content_type: MIME type, when the backend knows it.
        etag: Provider entity tag.
        last_modified: Last modification time.
        creation_time: Creation time.
    """
    name: str
    is_directory: bool
    is_public: bool
    url: str
    content_length: int | None = None
    content_type: str | None = None
    etag: str | None = None
    last_modified: datetime | None = None
    creation_time: datetime | None = None


@dataclass(frozen=True)
class FileProperties:
    """Result of ``Files.get_properties``.

    Attributes:
        is_directory: True if the path denotes a directory.
        is_public: True if the path is public.
        url: Direct URL of the path.
    """
    is_directory: bool
    is_public: bool
    url: str


class WriteSink(ABC):
    """Byte sink returned by :meth:`Backend.open_write`.

    Usable as an async context manager; leaving the block closes the sink.
    """

    @abstractmethod
    async def write(self, chunk: bytes) -> None:
        """Append *chunk*."""

    @abstractmethod
    async def close(self) -> int:
        """Commit the written data and return the number of bytes written."""

    async def __aenter__(self) -> WriteSink:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            await self.close()


class Backend(ABC):
    """Capability interface a storage provider implements.

    Paths passed in are already normalized.  Implementations raise their
    native errors; :meth:`status_from_error` turns them into an HTTP-like
    status that the :class:`~blobfiles.Files` facade maps to
    :class:`~blobfiles.exceptions.FilesError` subclasses.
    """

    public_prefix: str = PUBLIC_PREFIX
    max_list_results: int = MAX_LIST_RESULTS

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Return True if a file exists at *path*."""

    @abstractmethod
    async def get_file_info(self, path: str) -> FileDescriptor:
        """Return the descriptor of the file at *path* (404 if missing)."""

    @abstractmethod
    async def list_folder(self, path: str) -> list[FileDescriptor]:
        """List files under the directory *path*, recursively.

        Returns at most :attr:`max_list_results` entries.
        """

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete the file at *path* (404 if missing)."""

    @abstractmethod
    def open_read(self, path: str, position: int | None = None,
                  length: int | None = None) -> AsyncIterator[bytes]:
        """Stream the file at *path*, optionally a byte range.

        Fails with status 416 when *position* exceeds the file size.
        """

    @abstractmethod
    async def open_write(self, path: str) -> WriteSink:
        """Return a :class:`WriteSink` for *path*."""

    @abstractmethod
    async def write_stream(self, path: str, chunks: AsyncIterator[bytes]) -> int:
        """Write an async byte stream to *path*; return bytes written."""

    @abstractmethod
    async def write_buffer(self, path: str, data: bytes) -> int:
        """Write *data* to *path*; return bytes written."""

    @abstractmethod
    async def copy_remote_to_remote_file(self, src: str, dest: str) -> None:
        """Copy one remote file to another remote path."""

    @abstractmethod
    def url_for(self, path: str) -> str:
        """Return the direct URL of *path*."""

    @abstractmethod
    async def presign_url(self, path: str, expiry_in_seconds: int,
                          permissions: str) -> str:
        """Return a time-limited signed URL for *path*."""

    @abstractmethod
    async def revoke_presign_urls(self) -> None:
        """Invalidate every presigned URL issued so far."""

    @abstractmethod
    def status_from_error(self, exc: BaseException) -> int | None:
        """Return the HTTP-like status of a native provider error."""

    async def refresh_if_expired(self) -> None:
        """Swap in fresh credentials when the current ones expired."""

    async def close(self) -> None:
        """Release network resources."""
