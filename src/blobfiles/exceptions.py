"""Exceptions for blobfiles."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes carried by every :class:`FilesError`."""
    INTERNAL = "Internal"
    BAD_ARGUMENT = "BadArgument"
    BAD_CREDENTIALS = "BadCredentials"
    FORBIDDEN = "Forbidden"
    FILE_NOT_EXISTS = "FileNotExists"
    BAD_FILE_TYPE = "BadFileType"
    OUT_OF_RANGE = "OutOfRange"
    UNSUPPORTED_OPERATION = "UnsupportedOperation"

    def __str__(self) -> str:          # noqa: D105
        return self.value


class FilesError(Exception):
    """Base error raised by the :class:`~blobfiles.Files` facade.

    The message is prefixed with the error code, e.g.
    ``[FileNotExists] remote file 'a.txt' does not exist``.

    Attributes:
        code: :class:`ErrorCode` of the error.
        details: Call context (arguments) with secrets already redacted.
        internal: The wrapped provider or transport error, if any.
    """

    code: ErrorCode = ErrorCode.INTERNAL

    def __init__(self, message: str, *, details: dict[str, Any] | None = None,
                 internal: BaseException | None = None):
        super().__init__(f"[{self.code}] {message}")
        self.details = details or {}
        self.internal = internal


class InternalError(FilesError):
    """An unmapped provider failure; the provider error is kept in ``internal``."""
    code = ErrorCode.INTERNAL


class BadArgumentError(FilesError):
    """An argument is missing, has the wrong type, or options conflict."""
    code = ErrorCode.BAD_ARGUMENT


class BadCredentialsError(FilesError):
    """Credentials were rejected (provider 401 or TVM 401/403)."""
    code = ErrorCode.BAD_CREDENTIALS


class ForbiddenError(FilesError):
    """The provider denied access (403)."""
    code = ErrorCode.FORBIDDEN


class FileNotExistsError(FilesError):
    """The operation needs an existing file and none was found."""
    code = ErrorCode.FILE_NOT_EXISTS


class BadFileTypeError(FilesError):
    """The path's actual type conflicts with the operation."""
    code = ErrorCode.BAD_FILE_TYPE


class OutOfRangeError(FilesError):
    """The requested read position is past the end of the file."""
    code = ErrorCode.OUT_OF_RANGE


class UnsupportedOperationError(FilesError):
    """The backend cannot perform this operation with its credentials."""
    code = ErrorCode.UNSUPPORTED_OPERATION
