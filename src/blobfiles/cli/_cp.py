"""The cp command."""

from __future__ import annotations

import click

from ._helpers import main, _is_remote, _run, _status, _strip_colon


@main.command()
@click.argument("src")
@click.argument("dest")
@click.option("-n", "--no-overwrite", "no_overwrite", is_flag=True,
              help="Skip files whose destination already exists.")
@click.pass_context
def cp(ctx, src, dest, no_overwrite):
    """Copy SRC to DEST.

    Prefix remote paths with ':'; unprefixed paths are local.  At least
    one side must be remote.  A trailing '/' on DEST (or an existing local
    directory) copies into it.

    \b
    Examples:
        blobfiles cp ./report.pdf :docs/          # upload into docs/
        blobfiles cp ./site :public/              # upload a directory
        blobfiles cp :docs/ ./backup/             # download a directory
        blobfiles cp :a.txt :b.txt                # remote to remote
        blobfiles cp -n ./site :public/           # keep existing files
    """
    local_src = not _is_remote(src)
    local_dest = not _is_remote(dest)
    if local_src and local_dest:
        raise click.ClickException(
            "Copying between two local paths is not supported; prefix remote paths with ':'")

    def _progress(s, d):
        _status(ctx, f"{s} -> {d}")

    mapping = _run(ctx, lambda files: files.copy(
        _strip_colon(src), _strip_colon(dest),
        local_src=local_src, local_dest=local_dest,
        no_overwrite=no_overwrite, progress_callback=_progress,
    ))
    _status(ctx, f"Copied {len(mapping)} file(s)")
