"""Copy planning: decide which source files land on which destination paths."""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
from typing import TYPE_CHECKING

from ..exceptions import BadFileTypeError, FileNotExistsError
from ..paths import basename, child_path, normalize, relative
from ._resolve import _enum_local, _local_exists, _stat_local, _to_local_path
from ._types import CopyOptions, CopyPlan, LocalKind

if TYPE_CHECKING:
    from ..files import Files

logger = logging.getLogger(__name__)


def _as_dir(path: str) -> str:
    return path if path.endswith("/") else path + "/"


async def plan_copy(files: Files, src: str, dest: str,
                    options: CopyOptions) -> CopyPlan:
    """Compute the src to dest mapping of a copy.

    Local endpoints are typed by ``lstat``; remote endpoints by their path
    string.  The destination gets the source's base name appended when it
    is an existing local directory, a missing local path written with a
    trailing ``/``, or a remote directory path.  With
    ``options.no_overwrite``, entries whose destination already exists are
    moved from ``mapping`` to ``skipped``.

    Raises:
        FileNotExistsError: If the source matches no files.
        BadFileTypeError: If a local endpoint is neither a regular file nor
            a directory, or a directory would land on an existing local file.
    """
    # -- source --
    if options.local_src:
        src_path = _to_local_path(src)
        kind = await _stat_local(src_path)
        if kind is LocalKind.MISSING:
            raise FileNotExistsError(
                f"local src '{src_path}' does not exist", details={"src": src_path})
        if kind is LocalKind.OTHER:
            raise BadFileTypeError(
                f"local src '{src_path}' exists but is not a regular file nor a directory",
                details={"src": src_path})
        src_is_dir = kind is LocalKind.DIRECTORY
    else:
        src_path = normalize(src)
        src_is_dir = files._is_directory(src_path)
    src_marked = _as_dir(src_path) if src_is_dir else src_path

    # -- destination --
    if options.local_dest:
        dest_path = _to_local_path(dest)
        dest_kind = await _stat_local(dest_path)
        if dest_kind is LocalKind.OTHER:
            raise BadFileTypeError(
                f"local dest '{dest_path}' exists but is not a regular file nor a directory",
                details={"dest": dest_path})
        if dest_kind is LocalKind.FILE and src_is_dir:
            raise BadFileTypeError(
                f"local dest '{dest_path}' is a file but src '{src_path}' is a directory",
                details={"src": src_path, "dest": dest_path})
        extended = (dest_kind is LocalKind.DIRECTORY
                    or (dest_kind is LocalKind.MISSING
                        and dest.endswith(("/", os.sep))))
        if extended:
            dest_path = posixpath.join(dest_path, basename(src_path))
    else:
        dest_path = normalize(dest)
        extended = files._is_directory(dest_path)
        if extended:
            dest_path = child_path(dest_path, src_marked)

    # -- enumeration --
    if options.local_src:
        src_files = await _enum_local(src_path) if src_is_dir else [src_path]
    else:
        src_files = [fd.name for fd in await files.list(src_path)]
    if not src_files:
        raise FileNotExistsError(
            f"src '{src_path}' does not exist or has no files", details={"src": src_path})

    # -- mapping --
    mapping: dict[str, str] = {}
    if not src_is_dir:
        mapping[src_path] = dest_path
    else:
        for f in src_files:
            rel = relative(f, src_path)
            if options.local_dest:
                mapping[f] = posixpath.join(dest_path, rel)
            else:
                mapping[f] = normalize(posixpath.join(dest_path, rel))

    plan = CopyPlan(
        src=src_path, dest=dest_path, src_is_directory=src_is_dir,
        extended=extended, direction=options.direction, mapping=mapping,
    )
    if options.no_overwrite:
        await _drop_existing(files, plan, options)
    logger.debug("copy plan %s '%s' -> '%s': %d files, %d skipped",
                 plan.direction, src_path, dest_path, len(plan.mapping), len(plan.skipped))
    return plan


async def _drop_existing(files: Files, plan: CopyPlan, options: CopyOptions) -> None:
    """Move entries whose destination exists from ``mapping`` to ``skipped``."""
    if options.local_dest:
        dests = list(plan.mapping.values())
        found = await asyncio.gather(*(_local_exists(d) for d in dests))
        existing = {d for d, ok in zip(dests, found) if ok}
    else:
        listed_dir = plan.dest
        if plan.src_is_directory and not plan.extended:
            # A remote file and a remote directory of the same name coexist.
            listed_dir = _as_dir(plan.dest)
        existing = {fd.name for fd in await files.list(listed_dir)}
    kept: dict[str, str] = {}
    for s, d in plan.mapping.items():
        if d in existing:
            plan.skipped.append(s)
        else:
            kept[s] = d
    plan.mapping = kept
