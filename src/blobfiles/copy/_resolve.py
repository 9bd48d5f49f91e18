"""Local endpoint resolution: stat, directory walking, existence checks."""

from __future__ import annotations

import asyncio
import os
import stat

import aiofiles.os

from ._types import LocalKind


def _to_local_path(raw: str) -> str:
    """Return the absolute form of *raw* with forward slashes."""
    return os.path.abspath(raw).replace(os.sep, "/")


def _kind_from_mode(mode: int) -> LocalKind:
    if stat.S_ISREG(mode):
        return LocalKind.FILE
    if stat.S_ISDIR(mode):
        return LocalKind.DIRECTORY
    return LocalKind.OTHER


async def _stat_local(path: str) -> LocalKind:
    """``lstat`` *path* without following symlinks.

    A missing path is :attr:`LocalKind.MISSING`; every other ``OSError``
    propagates.
    """
    try:
        st = await asyncio.to_thread(os.lstat, path)
    except FileNotFoundError:
        return LocalKind.MISSING
    return _kind_from_mode(st.st_mode)


def _walk_local_files(root: str) -> list[str]:
    """Return sorted absolute paths of the regular files under *root*.

    Symlinks (to files or directories) and other non-regular entries are
    skipped; symlinked directories are not descended into.
    """
    result: list[str] = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for fname in filenames:
            full = os.path.join(dirpath, fname)
            if _kind_from_mode(os.lstat(full).st_mode) is LocalKind.FILE:
                result.append(full.replace(os.sep, "/"))
    result.sort()
    return result


async def _enum_local(root: str) -> list[str]:
    return await asyncio.to_thread(_walk_local_files, root)


async def _local_exists(path: str) -> bool:
    return await aiofiles.os.path.exists(path)
