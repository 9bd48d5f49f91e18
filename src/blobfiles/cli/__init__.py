"""blobfiles CLI: list, read, write, copy and presign remote files."""

from ._helpers import main  # noqa: F401

# Import command modules to register Click commands with the main group.
from . import _basic, _cp  # noqa: F401
