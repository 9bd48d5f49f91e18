"""Remote path model.

A remote path is a plain string.  A trailing ``/`` marks a directory, its
absence a file (whether or not it exists).  ``''`` and ``/`` denote the
root.  Paths whose first segment is :data:`PUBLIC_PREFIX` are public.
"""

from __future__ import annotations

import posixpath

PUBLIC_PREFIX = "public"


def normalize(path: str) -> str:
    """Normalize a remote path.

    Collapses ``.``, ``..`` and repeated slashes as if *path* were absolute,
    then strips leading slashes.  A trailing ``/`` is preserved.

    >>> normalize("a/../b")
    'b'
    >>> normalize("/x/")
    'x/'
    """
    path = path.replace("\\", "/")
    trailing = path.endswith("/")
    res = posixpath.normpath("/" + path).lstrip("/")
    if trailing and res:
        res += "/"
    return res


def is_root(path: str) -> bool:
    """Return True if *path* is the root."""
    return normalize(path) == ""


def is_directory(path: str, prefix: str = PUBLIC_PREFIX) -> bool:
    """Return True if *path* denotes a directory."""
    p = normalize(path)
    return p.endswith("/") or p == "" or p == prefix


def is_public(path: str, prefix: str = PUBLIC_PREFIX) -> bool:
    """Return True if *path* lives under the public *prefix*."""
    p = normalize(path)
    return p == prefix or p.startswith(prefix + "/")


def basename(path: str) -> str:
    """Return the last segment of *path*, ignoring a trailing ``/``."""
    return posixpath.basename(path.replace("\\", "/").rstrip("/"))


def relative(path: str, start: str) -> str:
    """Return *path* relative to the directory *start* (both unix-style)."""
    start = start.replace("\\", "/").rstrip("/")
    path = path.replace("\\", "/").rstrip("/")
    if not start:
        return path.lstrip("/")
    return posixpath.relpath(path, start)


def child_path(parent: str, path: str, relative_to: str | None = None) -> str:
    """Return the remote path of *path* placed under *parent*.

    Without *relative_to* only the base name of *path* is appended; with it,
    the sub-path from *relative_to* down to *path* is kept.  A trailing
    ``/`` is re-added when *path* is a directory.
    """
    child_is_dir = path.endswith("/")
    name = relative(path, relative_to) if relative_to is not None else basename(path)
    joined = normalize(posixpath.join(normalize(parent), name))
    if child_is_dir and joined and not joined.endswith("/"):
        joined += "/"
    return joined
