"""Data structures for copy operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from ..exceptions import BadArgumentError


class Direction(str, Enum):
    """Copy direction: ``REMOTE_TO_REMOTE``, ``LOCAL_TO_REMOTE`` or ``REMOTE_TO_LOCAL``."""
    REMOTE_TO_REMOTE = "remote-to-remote"
    LOCAL_TO_REMOTE = "local-to-remote"
    REMOTE_TO_LOCAL = "remote-to-local"

    def __str__(self) -> str:          # noqa: D105
        return self.value


class LocalKind(str, Enum):
    """What an ``lstat`` of a local path found."""
    MISSING = "missing"
    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"

    def __str__(self) -> str:          # noqa: D105
        return self.value


@dataclass(frozen=True)
class CopyOptions:
    """Options of a single ``Files.copy`` call.

    Attributes:
        local_src: The source is a local filesystem path.
        local_dest: The destination is a local filesystem path.
        no_overwrite: Drop files whose destination already exists.
        progress_callback: Called as ``cb(src, dest)`` after each file.
    """
    local_src: bool = False
    local_dest: bool = False
    no_overwrite: bool = False
    progress_callback: Callable[[str, str], Any] | None = None

    def __post_init__(self):
        if self.local_src and self.local_dest:
            raise BadArgumentError(
                "local_src and local_dest are mutually exclusive",
                details={"local_src": True, "local_dest": True},
            )

    @property
    def direction(self) -> Direction:
        if self.local_src:
            return Direction.LOCAL_TO_REMOTE
        if self.local_dest:
            return Direction.REMOTE_TO_LOCAL
        return Direction.REMOTE_TO_REMOTE


@dataclass
class CopyPlan:
    """The outcome of planning a copy, before any byte moves.

    Attributes:
        src: Normalized source path (remote) or absolute source path (local).
        dest: Destination after directory extension.
        src_is_directory: True if the source is a directory.
        extended: True if *dest* had the source's base name appended.
        direction: :class:`Direction` of the copy.
        mapping: Source file to destination path, in enumeration order.
        skipped: Sources dropped because their destination already exists.
    """
    src: str
    dest: str
    src_is_directory: bool
    extended: bool
    direction: Direction
    mapping: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
