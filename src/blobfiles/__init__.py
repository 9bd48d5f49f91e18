from .files import Files
from .backend import Backend, FileDescriptor, FilePermissions, FileProperties, WriteSink
from .backends import MemoryBackend, MemoryBackendError
from .config import AzureCredentials, FilesConfig, OpenWhiskCredentials, TvmConfig, init
from .copy import CopyOptions, CopyPlan
from .credentials import FileCredentialCache, TvmClient, with_hidden_fields
from .exceptions import (
    BadArgumentError,
    BadCredentialsError,
    BadFileTypeError,
    ErrorCode,
    FileNotExistsError,
    FilesError,
    ForbiddenError,
    InternalError,
    OutOfRangeError,
    UnsupportedOperationError,
)
from .paths import PUBLIC_PREFIX

__all__ = [
    "Files", "init",
    "Backend", "FileDescriptor", "FilePermissions", "FileProperties", "WriteSink",
    "MemoryBackend", "MemoryBackendError",
    "AzureCredentials", "FilesConfig", "OpenWhiskCredentials", "TvmConfig",
    "CopyOptions", "CopyPlan",
    "FileCredentialCache", "TvmClient", "with_hidden_fields",
    "FilesError", "ErrorCode", "BadArgumentError", "BadCredentialsError",
    "BadFileTypeError", "FileNotExistsError", "ForbiddenError", "InternalError",
    "OutOfRangeError", "UnsupportedOperationError",
    "PUBLIC_PREFIX",
]
