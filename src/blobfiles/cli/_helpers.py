"""Shared helpers, option decorators, and the main CLI group."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from ..config import FilesConfig, init
from ..exceptions import FilesError
from ..files import Files


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _is_remote(raw: str) -> bool:
    """Return True if *raw* names a remote path (leading ':')."""
    return raw.startswith(":")


def _strip_colon(raw: str) -> str:
    """Strip an optional leading ':' from a remote path."""
    return raw[1:] if raw.startswith(":") else raw


def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


async def _open_files(ctx) -> Files:
    """Build the :class:`Files` instance for this invocation.

    A ``files_factory`` in the context object takes precedence over the
    configuration (used to run the CLI against other backends).
    """
    factory = ctx.obj.get("files_factory")
    if factory is not None:
        return factory()
    config_path = ctx.obj.get("config_path")
    config = FilesConfig.from_file(config_path) if config_path else None
    return await init(config)


def _run(ctx, fn):
    """Run ``await fn(files)`` on a fresh event loop.

    :class:`~blobfiles.exceptions.FilesError` becomes a
    :class:`click.ClickException`.
    """
    async def _go():
        files = await _open_files(ctx)
        async with files:
            return await fn(files)

    try:
        return asyncio.run(_go())
    except FilesError as exc:
        raise click.ClickException(str(exc))


def _stdout_bytes():
    return click.get_binary_stream("stdout")


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              envvar="BLOBFILES_CONFIG",
              help="JSON config file (or set BLOBFILES_CONFIG). "
                   "Without it, OpenWhisk credentials are read from the environment.")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output and debug logs on stderr.")
@click.pass_context
def main(ctx, config_path, verbose):
    """blobfiles: remote file storage on Azure Blob.

    \b
    Quick start:
      blobfiles write :hello.txt hello.txt
      blobfiles ls
      blobfiles cat :hello.txt
      blobfiles cp ./photos :public/

    \b
    Remote paths are prefixed with ':' in cp (e.g. :path/to/file).
    A trailing '/' marks a directory; paths under 'public/' are public.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if config_path is not None:
        ctx.obj["config_path"] = config_path
    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr,
                            format="%(levelname)s %(name)s: %(message)s")
