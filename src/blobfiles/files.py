"""Files: the public facade over a storage :class:`~blobfiles.backend.Backend`."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable

from ._content import BytesContent, collect, resolve_content
from .backend import FileDescriptor, FilePermissions, FileProperties, WriteSink
from .copy import CopyOptions, execute_copy, notify_progress, plan_copy
from .exceptions import (
    BadArgumentError,
    BadCredentialsError,
    BadFileTypeError,
    FileNotExistsError,
    FilesError,
    ForbiddenError,
    InternalError,
    OutOfRangeError,
)
from .paths import is_directory, is_public, normalize

if TYPE_CHECKING:
    from .backend import Backend

logger = logging.getLogger(__name__)

__all__ = ["Files"]

_PERMISSION_LETTERS = frozenset(p.value for p in FilePermissions)


# ---------------------------------------------------------------------------
# Argument validation
# ---------------------------------------------------------------------------

def _check_path(value, name: str = "path") -> str:
    if not isinstance(value, str):
        raise BadArgumentError(
            f"{name} must be a string, got {type(value).__name__}",
            details={name: repr(value)},
        )
    return value


def _check_uint(value, name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise BadArgumentError(
            f"{name} must be a non-negative integer, got {value!r}",
            details={name: repr(value)},
        )
    return value


def _check_flag(value, name: str) -> bool:
    if not isinstance(value, bool):
        raise BadArgumentError(
            f"{name} must be a boolean, got {value!r}", details={name: repr(value)},
        )
    return value


def _check_callback(value, name: str = "progress_callback"):
    if value is not None and not callable(value):
        raise BadArgumentError(
            f"{name} must be callable", details={name: repr(value)},
        )
    return value


class Files:
    """Remote file storage over a :class:`~blobfiles.backend.Backend`.

    Remote paths follow a single string convention: a trailing ``/`` marks
    a directory, ``''`` is the root, and paths under ``public/`` are
    public.  Every operation validates its arguments, normalizes the path
    and calls :meth:`Backend.refresh_if_expired` before using the backend.

    Usage::

        async with Files(MemoryBackend()) as files:
            await files.write("a.txt", "hi")
            await files.copy("a.txt", "b.txt")

    Args:
        backend: Storage provider.
    """

    def __init__(self, backend: Backend):
        self._backend = backend

    def __repr__(self) -> str:
        return f"Files({self._backend!r})"

    async def __aenter__(self) -> Files:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def backend(self) -> Backend:
        """The storage provider this facade wraps."""
        return self._backend

    @property
    def public_prefix(self) -> str:
        return self._backend.public_prefix

    def _is_directory(self, path: str) -> bool:
        return is_directory(path, self._backend.public_prefix)

    def _is_public(self, path: str) -> bool:
        return is_public(path, self._backend.public_prefix)

    def _throw_if_directory(self, path: str) -> None:
        if self._is_directory(path):
            raise BadFileTypeError(
                f"'{path}' is a directory, expected a file", details={"path": path},
            )

    async def close(self) -> None:
        """Release the backend's network resources."""
        await self._backend.close()

    # --- Provider error mapping ---

    async def _provider_request(self, request: Awaitable[Any], *,
                                file_path: str | None = None,
                                details: dict[str, Any] | None = None) -> Any:
        """Await a backend call, mapping native errors to :class:`FilesError`.

        A 404 raises :class:`FileNotExistsError` when *file_path* is given
        and returns ``None`` otherwise.  A :class:`FilesError` raised by the
        backend passes through unchanged.
        """
        try:
            return await request
        except FilesError:
            raise
        except Exception as exc:
            err = self._map_provider_error(exc, file_path, details)
            if err is None:
                return None
            raise err from exc

    def _map_provider_error(self, exc: BaseException, file_path: str | None,
                            details: dict[str, Any] | None) -> FilesError | None:
        status = self._backend.status_from_error(exc)
        details = dict(details or {})
        if file_path is not None:
            details.setdefault("file_path", file_path)
        if status == 404:
            if file_path is None:
                return None
            return FileNotExistsError(
                f"file '{file_path}' does not exist", details=details, internal=exc)
        if status == 416:
            return OutOfRangeError(
                f"read position is out of range for '{file_path}'",
                details=details, internal=exc)
        if status == 401:
            return BadCredentialsError(
                "storage provider rejected the credentials", details=details, internal=exc)
        if status == 403:
            return ForbiddenError(
                "access to the storage provider was denied", details=details, internal=exc)
        return InternalError(
            f"unknown storage provider error: {exc}", details=details, internal=exc)

    async def _guarded_stream(self, chunks: AsyncIterator[bytes],
                              file_path: str) -> AsyncIterator[bytes]:
        """Wrap a backend read stream so iteration errors are mapped too."""
        try:
            async for chunk in chunks:
                yield chunk
        except FilesError:
            raise
        except Exception as exc:
            err = self._map_provider_error(exc, file_path, None)
            raise (err or InternalError(str(exc), internal=exc)) from exc

    # --- Read operations ---

    async def list(self, path: str = "") -> list[FileDescriptor]:
        """List the files at *path*.

        A directory path lists every file below it (up to the backend's
        listing cap).  A file path returns its descriptor, or ``[]`` when
        it does not exist.

        Args:
            path: Remote path (``''`` for the root).
        """
        p = normalize(_check_path(path))
        await self._backend.refresh_if_expired()
        if self._is_directory(p):
            res = await self._provider_request(
                self._backend.list_folder(p), details={"path": p}) or []
            logger.debug("listed %d files under '%s'", len(res), p)
            return res
        info = await self._provider_request(
            self._backend.get_file_info(p), details={"path": p})
        return [info] if info is not None else []

    async def exists(self, path: str) -> bool:
        """Return True if a file exists at *path* (or a directory has files)."""
        p = normalize(_check_path(path))
        if self._is_directory(p):
            return len(await self.list(p)) > 0
        await self._backend.refresh_if_expired()
        return bool(await self._provider_request(
            self._backend.exists(p), details={"path": p}))

    async def get_file_info(self, path: str) -> FileDescriptor:
        """Return the :class:`FileDescriptor` of the file at *path*.

        Raises:
            BadFileTypeError: If *path* is a directory.
            FileNotExistsError: If *path* does not exist.
        """
        p = normalize(_check_path(path))
        self._throw_if_directory(p)
        await self._backend.refresh_if_expired()
        return await self._provider_request(
            self._backend.get_file_info(p), file_path=p)

    async def create_read_stream(self, path: str, *, position: int | None = None,
                                 length: int | None = None) -> AsyncIterator[bytes]:
        """Return an async iterator over the bytes of *path*.

        Args:
            path: Remote file path.
            position: Byte offset to start reading from.
            length: Maximum number of bytes to read.

        Raises:
            BadFileTypeError: If *path* is a directory.
            FileNotExistsError: If *path* does not exist (while iterating).
            OutOfRangeError: If *position* is past the end (while iterating).
        """
        p = normalize(_check_path(path))
        _check_uint(position, "position")
        _check_uint(length, "length")
        self._throw_if_directory(p)
        await self._backend.refresh_if_expired()
        return self._guarded_stream(
            self._backend.open_read(p, position=position, length=length), p)

    async def read(self, path: str, *, position: int | None = None,
                   length: int | None = None) -> bytes:
        """Read the contents of *path* as bytes.

        Args:
            path: Remote file path.
            position: Byte offset to start reading from.
            length: Maximum number of bytes to read.

        Raises:
            BadFileTypeError: If *path* is a directory.
            FileNotExistsError: If *path* does not exist.
            OutOfRangeError: If *position* is past the end of the file.
        """
        stream = await self.create_read_stream(path, position=position, length=length)
        return await collect(stream)

    async def get_properties(self, path: str) -> FileProperties:
        """Return directory/public flags and the URL of *path*.

        Does not check that *path* exists.
        """
        p = normalize(_check_path(path))
        await self._backend.refresh_if_expired()
        return FileProperties(
            is_directory=self._is_directory(p),
            is_public=self._is_public(p),
            url=self._backend.url_for(p),
        )

    # --- Write operations ---

    async def create_write_stream(self, path: str) -> WriteSink:
        """Return a :class:`~blobfiles.backend.WriteSink` for *path*.

        Prefer :meth:`write` with a stream argument.

        Raises:
            BadFileTypeError: If *path* is a directory.
        """
        p = normalize(_check_path(path))
        self._throw_if_directory(p)
        await self._backend.refresh_if_expired()
        return await self._provider_request(
            self._backend.open_write(p), file_path=p)

    async def write(self, path: str, content) -> int:
        """Write *content* to *path*, replacing any existing file.

        Args:
            path: Remote file path.
            content: ``str``, bytes-like, or a byte stream (see
                :func:`~blobfiles._content.resolve_content`).

        Returns:
            Number of bytes written.

        Raises:
            BadArgumentError: If *content* has an unsupported type.
            BadFileTypeError: If *path* is a directory.
        """
        p = normalize(_check_path(path))
        resolved = resolve_content(content)
        self._throw_if_directory(p)
        await self._backend.refresh_if_expired()
        if isinstance(resolved, BytesContent):
            return await self._provider_request(
                self._backend.write_buffer(p, resolved.data),
                file_path=p, details={"content_type": "bytes"})
        return await self._provider_request(
            self._backend.write_stream(p, resolved.chunks),
            file_path=p, details={"content_type": "stream"})

    async def delete(self, path: str, *,
                     progress_callback: Callable[[str], Any] | None = None) -> list[str]:
        """Delete a file, or every file below a directory path.

        Args:
            path: Remote file or directory path.
            progress_callback: Called with each deleted path.

        Returns:
            The deleted paths; ``[]`` when nothing matched.
        """
        _check_path(path)
        _check_callback(progress_callback)
        elements = await self.list(path)

        async def _delete_one(fd: FileDescriptor) -> str:
            await self._provider_request(
                self._backend.delete(fd.name), details={"path": fd.name})
            logger.debug("deleted '%s'", fd.name)
            await notify_progress(progress_callback, fd.name)
            return fd.name

        return list(await asyncio.gather(*(_delete_one(fd) for fd in elements)))

    async def copy(self, src: str, dest: str, *, local_src: bool = False,
                   local_dest: bool = False, no_overwrite: bool = False,
                   progress_callback: Callable[[str, str], Any] | None = None,
                   ) -> dict[str, str]:
        """Copy files between remote paths or between local disk and remote.

        Rules (``a`` a file, ``a/`` a directory):

        - remote to remote: ``a/`` to ``b/`` gives ``b/a/...``; ``a`` to
          ``b/`` gives ``b/a``; ``a`` to ``b`` gives ``b``; ``a/`` to ``b``
          gives ``b/...`` (a remote ``b`` and ``b/`` may coexist).
        - remote to local: same, except that an existing local directory
          ``b`` is treated like ``b/``, and copying a directory onto an
          existing local file is an error.
        - local to remote: same as remote to remote; the local source's
          type comes from disk.
        - local to local: not supported.

        Args:
            src: Source path (local when *local_src*).
            dest: Destination path (local when *local_dest*).
            local_src: *src* is a path on the local filesystem.
            local_dest: *dest* is a path on the local filesystem.
            no_overwrite: Skip files whose destination already exists.
            progress_callback: Called as ``cb(src, dest)`` after each file.

        Returns:
            Mapping of every copied source file to its destination.

        Raises:
            BadArgumentError: If both *local_src* and *local_dest* are set.
            FileNotExistsError: If *src* matches no files.
            BadFileTypeError: If a local endpoint is neither a regular file
                nor a directory, or a directory would be copied onto an
                existing local file.
        """
        _check_path(src, "src")
        _check_path(dest, "dest")
        options = CopyOptions(
            local_src=_check_flag(local_src, "local_src"),
            local_dest=_check_flag(local_dest, "local_dest"),
            no_overwrite=_check_flag(no_overwrite, "no_overwrite"),
            progress_callback=_check_callback(progress_callback),
        )
        plan = await plan_copy(self, src, dest, options)
        await execute_copy(self, plan, options)
        return dict(plan.mapping)

    # --- Presigned URLs ---

    async def generate_presign_url(self, path: str, *, expiry_in_seconds: int,
                                   permissions: str = FilePermissions.READ.value) -> str:
        """Return a time-limited signed URL for the file at *path*.

        Args:
            path: Remote file path.
            expiry_in_seconds: Lifetime of the URL (positive).
            permissions: Any combination of ``r``, ``w`` and ``d``.

        Raises:
            BadArgumentError: On a bad expiry or unknown permission letter.
            BadFileTypeError: If *path* is a directory.
            UnsupportedOperationError: If the backend's credentials cannot
                sign URLs.
        """
        p = normalize(_check_path(path))
        if (isinstance(expiry_in_seconds, bool) or not isinstance(expiry_in_seconds, int)
                or expiry_in_seconds <= 0):
            raise BadArgumentError(
                f"expiry_in_seconds must be a positive integer, got {expiry_in_seconds!r}",
                details={"path": p, "expiry_in_seconds": repr(expiry_in_seconds)},
            )
        permissions = str(permissions)
        if not permissions or not set(permissions) <= _PERMISSION_LETTERS:
            raise BadArgumentError(
                f"permissions must combine 'r', 'w' and 'd', got {permissions!r}",
                details={"path": p, "permissions": permissions},
            )
        self._throw_if_directory(p)
        await self._backend.refresh_if_expired()
        return await self._provider_request(
            self._backend.presign_url(p, expiry_in_seconds, permissions),
            file_path=p,
            details={"expiry_in_seconds": expiry_in_seconds, "permissions": permissions},
        )

    async def revoke_all_presign_urls(self) -> None:
        """Invalidate every presigned URL issued so far."""
        await self._backend.refresh_if_expired()
        await self._provider_request(self._backend.revoke_presign_urls(), details={})
