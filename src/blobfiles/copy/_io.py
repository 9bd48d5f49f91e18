"""Copy execution: move the bytes of every planned entry."""

from __future__ import annotations

import asyncio
import inspect
import logging
import posixpath
from typing import TYPE_CHECKING, Any, Callable

import aiofiles
import aiofiles.os

from ._types import CopyOptions, CopyPlan, Direction

if TYPE_CHECKING:
    from ..files import Files

logger = logging.getLogger(__name__)


async def notify_progress(callback: Callable[..., Any] | None, *args) -> None:
    """Invoke a progress callback, awaiting it if it returns an awaitable."""
    if callback is None:
        return
    res = callback(*args)
    if inspect.isawaitable(res):
        await res


# ---------------------------------------------------------------------------
# Single-file transfers
# ---------------------------------------------------------------------------

async def _copy_remote_file(files: Files, src: str, dest: str) -> None:
    await files._provider_request(
        files.backend.copy_remote_to_remote_file(src, dest),
        file_path=src, details={"src": src, "dest": dest})


async def _upload_file(files: Files, src: str, dest: str) -> None:
    async with aiofiles.open(src, "rb") as f:
        await files.write(dest, f)


async def _download_file(files: Files, src: str, dest: str) -> None:
    # The local file is only created once the provider has answered.
    chunks = (await files.create_read_stream(src)).__aiter__()
    try:
        first = await chunks.__anext__()
    except StopAsyncIteration:
        first = b""
    parent = posixpath.dirname(dest)
    if parent:
        await aiofiles.os.makedirs(parent, exist_ok=True)
    async with aiofiles.open(dest, "wb") as out:
        await out.write(first)
        async for chunk in chunks:
            await out.write(chunk)


_TRANSFERS = {
    Direction.REMOTE_TO_REMOTE: _copy_remote_file,
    Direction.LOCAL_TO_REMOTE: _upload_file,
    Direction.REMOTE_TO_LOCAL: _download_file,
}


# ---------------------------------------------------------------------------
# Fan-out
# ---------------------------------------------------------------------------

async def execute_copy(files: Files, plan: CopyPlan, options: CopyOptions) -> None:
    """Run every transfer of *plan* concurrently.

    The progress callback fires once per file after it completes.  The
    first failure propagates once all transfers have settled; the others
    are not cancelled.
    """
    transfer = _TRANSFERS[plan.direction]

    async def _one(src: str, dest: str) -> None:
        await transfer(files, src, dest)
        logger.debug("copied '%s' -> '%s'", src, dest)
        await notify_progress(options.progress_callback, src, dest)

    results = await asyncio.gather(
        *(_one(s, d) for s, d in plan.mapping.items()), return_exceptions=True)
    for res in results:
        if isinstance(res, BaseException):
            raise res
