"""Console script for ``blobfiles``; the click-based CLI is an optional extra."""

import sys

_INSTALL_HINT = "pip install 'blobfiles[cli]'"


def main():
    try:
        from .cli import main as cli_main
    except ImportError as exc:
        sys.stderr.write(
            f"blobfiles: the command line needs click, which could not be imported ({exc}).\n"
            f"Install the CLI extra with:  {_INSTALL_HINT}\n")
        raise SystemExit(1) from None
    cli_main(prog_name="blobfiles")
