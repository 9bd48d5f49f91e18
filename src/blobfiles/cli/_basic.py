"""Basic commands: ls, cat, write, rm, props, presign, revoke."""

from __future__ import annotations

import json

import aiofiles
import click

from ._helpers import main, _run, _status, _stdout_bytes, _strip_colon


# ---------------------------------------------------------------------------
# ls
# ---------------------------------------------------------------------------

@main.command()
@click.argument("path", default="")
@click.option("-l", "--long", "long_", is_flag=True, help="Show sizes and URLs.")
@click.option("--json", "as_json", is_flag=True, help="JSON output.")
@click.pass_context
def ls(ctx, path, long_, as_json):
    """List files at PATH (or the root).

    A PATH ending in '/' lists everything below it; a file PATH lists
    that file only.

    \b
    Examples:
        blobfiles ls                  # every file
        blobfiles ls :docs/           # files under docs/
        blobfiles ls -l public/       # public files with sizes and URLs
    """
    entries = _run(ctx, lambda files: files.list(_strip_colon(path)))
    if as_json:
        click.echo(json.dumps([{
            "name": e.name,
            "is_public": e.is_public,
            "url": e.url,
            "content_length": e.content_length,
            "content_type": e.content_type,
        } for e in entries], indent=2))
        return
    for e in entries:
        if long_:
            size = "" if e.content_length is None else str(e.content_length)
            click.echo(f"{size:>10}  {e.name}  {e.url}")
        else:
            click.echo(e.name)


# ---------------------------------------------------------------------------
# cat
# ---------------------------------------------------------------------------

@main.command()
@click.argument("path")
@click.option("--position", type=click.IntRange(min=0), default=None,
              help="Byte offset to start reading from.")
@click.option("--length", type=click.IntRange(min=0), default=None,
              help="Number of bytes to read.")
@click.pass_context
def cat(ctx, path, position, length):
    """Write the contents of the remote file PATH to stdout."""
    data = _run(ctx, lambda files: files.read(
        _strip_colon(path), position=position, length=length))
    _stdout_bytes().write(data)


# ---------------------------------------------------------------------------
# write
# ---------------------------------------------------------------------------

@main.command()
@click.argument("path")
@click.argument("source", default="-")
@click.pass_context
def write(ctx, path, source):
    """Write SOURCE (a local file, or '-' for stdin) to the remote file PATH."""
    remote = _strip_colon(path)

    async def _write(files):
        if source == "-":
            return await files.write(remote, click.get_binary_stream("stdin"))
        try:
            async with aiofiles.open(source, "rb") as f:
                return await files.write(remote, f)
        except FileNotFoundError:
            raise click.ClickException(f"No such file: {source}")

    n = _run(ctx, _write)
    _status(ctx, f"Wrote {n} bytes to {remote}")


# ---------------------------------------------------------------------------
# rm
# ---------------------------------------------------------------------------

@main.command()
@click.argument("path")
@click.pass_context
def rm(ctx, path):
    """Delete the remote file PATH, or every file below a PATH ending in '/'."""
    remote = _strip_colon(path)
    deleted = _run(ctx, lambda files: files.delete(
        remote, progress_callback=lambda p: _status(ctx, f"- {p}")))
    if not deleted:
        raise click.ClickException(f"No files at {remote or '/'}")
    _status(ctx, f"Deleted {len(deleted)} file(s)")


# ---------------------------------------------------------------------------
# props
# ---------------------------------------------------------------------------

@main.command()
@click.argument("path")
@click.pass_context
def props(ctx, path):
    """Show whether PATH is a directory, whether it is public, and its URL."""
    p = _run(ctx, lambda files: files.get_properties(_strip_colon(path)))
    click.echo(json.dumps({
        "is_directory": p.is_directory,
        "is_public": p.is_public,
        "url": p.url,
    }, indent=2))


# ---------------------------------------------------------------------------
# presign / revoke
# ---------------------------------------------------------------------------

@main.command()
@click.argument("path")
@click.option("--expiry", "expiry", type=click.IntRange(min=1), required=True,
              help="URL lifetime in seconds.")
@click.option("--permissions", default="r", show_default=True,
              help="Any combination of r (read), w (write), d (delete).")
@click.pass_context
def presign(ctx, path, expiry, permissions):
    """Print a presigned URL for the remote file PATH."""
    url = _run(ctx, lambda files: files.generate_presign_url(
        _strip_colon(path), expiry_in_seconds=expiry, permissions=permissions))
    click.echo(url)


@main.command()
@click.pass_context
def revoke(ctx):
    """Revoke every presigned URL issued so far."""
    _run(ctx, lambda files: files.revoke_all_presign_urls())
    _status(ctx, "Revoked all presigned URLs")
