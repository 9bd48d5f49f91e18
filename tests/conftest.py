"""Shared fixtures for blobfiles tests."""

import asyncio

import pytest
from click.testing import CliRunner

from blobfiles import Files, MemoryBackend


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def files(backend):
    return Files(backend)


@pytest.fixture
def seeded(files, run):
    """Files with a.txt, docs/{x.txt,y/z.txt}, src/subsrc/{a,b/c} and public/p.txt."""
    for path, data in {
        "a.txt": "hello",
        "docs/x.txt": "x",
        "docs/y/z.txt": "z",
        "src/subsrc/a": "A",
        "src/subsrc/b/c": "C",
        "public/p.txt": "P",
    }.items():
        run(files.write(path, data))
    return files


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cli_obj(backend):
    """Context object that points the CLI at the shared memory backend."""
    return {"files_factory": lambda: Files(backend)}
