"""Copy files between remote paths and between local disk and remote storage.

Planning (which file goes where) is separate from execution (moving the
bytes), so the mapping can be inspected and tested without any I/O.
"""

from ._types import CopyOptions, CopyPlan, Direction, LocalKind
from ._resolve import (
    _enum_local,
    _local_exists,
    _stat_local,
    _to_local_path,
    _walk_local_files,
)
from ._plan import plan_copy
from ._io import execute_copy, notify_progress

__all__ = [
    "CopyOptions", "CopyPlan", "Direction", "LocalKind",
    "execute_copy", "notify_progress", "plan_copy",
]
