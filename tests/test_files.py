"""Tests for the Files facade: listing, reading, writing, deleting, presigning."""

import io
from unittest import mock

import pytest

from blobfiles import (
    BadArgumentError,
    BadCredentialsError,
    BadFileTypeError,
    FileNotExistsError,
    Files,
    ForbiddenError,
    InternalError,
    MemoryBackend,
    MemoryBackendError,
    OutOfRangeError,
    UnsupportedOperationError,
)


def names(entries):
    return [e.name for e in entries]


async def _agen(*chunks):
    for c in chunks:
        yield c


class TestList:
    def test_root(self, seeded, run):
        assert names(run(seeded.list())) == [
            "a.txt", "docs/x.txt", "docs/y/z.txt", "public/p.txt",
            "src/subsrc/a", "src/subsrc/b/c",
        ]

    def test_directory_is_recursive(self, seeded, run):
        assert names(run(seeded.list("docs/"))) == ["docs/x.txt", "docs/y/z.txt"]

    def test_public_prefix_lists_public_files(self, seeded, run):
        assert names(run(seeded.list("public"))) == ["public/p.txt"]

    def test_file(self, seeded, run):
        entries = run(seeded.list("a.txt"))
        assert names(entries) == ["a.txt"]
        assert entries[0].content_length == 5

    def test_missing_file_is_empty(self, seeded, run):
        assert run(seeded.list("nope.txt")) == []

    def test_file_without_slash_is_not_a_directory(self, seeded, run):
        assert run(seeded.list("docs")) == []

    def test_path_normalized(self, seeded, run):
        assert names(run(seeded.list("/docs/./y/"))) == ["docs/y/z.txt"]

    def test_non_string_path(self, files, run):
        with pytest.raises(BadArgumentError):
            run(files.list(123))


class TestExists:
    def test_file(self, seeded, run):
        assert run(seeded.exists("a.txt"))
        assert not run(seeded.exists("b.txt"))

    def test_directory(self, seeded, run):
        assert run(seeded.exists("docs/"))
        assert run(seeded.exists(""))
        assert not run(seeded.exists("empty/"))

    def test_empty_root(self, files, run):
        assert not run(files.exists(""))


class TestGetFileInfo:
    def test_descriptor(self, seeded, run):
        fd = run(seeded.get_file_info("/public//p.txt"))
        assert fd.name == "public/p.txt"
        assert fd.is_public
        assert fd.content_type == "text/plain"

    def test_missing(self, seeded, run):
        with pytest.raises(FileNotExistsError) as exc_info:
            run(seeded.get_file_info("nope.txt"))
        assert exc_info.value.details["file_path"] == "nope.txt"
        assert isinstance(exc_info.value.internal, MemoryBackendError)

    def test_directory_rejected(self, seeded, run):
        with pytest.raises(BadFileTypeError):
            run(seeded.get_file_info("docs/"))


class TestRead:
    def test_whole_file(self, seeded, run):
        assert run(seeded.read("a.txt")) == b"hello"

    def test_range(self, seeded, run):
        assert run(seeded.read("a.txt", position=1, length=3)) == b"ell"
        assert run(seeded.read("a.txt", position=3)) == b"lo"
        assert run(seeded.read("a.txt", length=2)) == b"he"

    def test_zero_length(self, seeded, run):
        assert run(seeded.read("a.txt", position=0, length=0)) == b""

    def test_out_of_range(self, seeded, run):
        with pytest.raises(OutOfRangeError):
            run(seeded.read("a.txt", position=6))

    def test_missing(self, seeded, run):
        with pytest.raises(FileNotExistsError):
            run(seeded.read("nope.txt"))

    def test_directory_rejected(self, seeded, run):
        with pytest.raises(BadFileTypeError):
            run(seeded.read("docs/"))
        with pytest.raises(BadFileTypeError):
            run(seeded.read(""))

    @pytest.mark.parametrize("kwargs", [
        {"position": -1}, {"length": -5}, {"position": True},
        {"length": "3"}, {"position": 1.5},
    ])
    def test_bad_range_arguments(self, seeded, run, kwargs):
        with pytest.raises(BadArgumentError):
            run(seeded.read("a.txt", **kwargs))

    def test_read_stream(self, seeded, run):
        async def go():
            stream = await seeded.create_read_stream("docs/x.txt")
            return [chunk async for chunk in stream]

        assert b"".join(run(go())) == b"x"


class TestWrite:
    def test_str(self, files, run):
        assert run(files.write("t.txt", "héllo")) == len("héllo".encode())
        assert run(files.read("t.txt")) == "héllo".encode()

    def test_bytes_like(self, files, run):
        assert run(files.write("b.bin", bytearray(b"\x00\x01"))) == 2
        assert run(files.read("b.bin")) == b"\x00\x01"

    def test_async_stream(self, files, run):
        assert run(files.write("s.bin", _agen(b"ab", b"cd"))) == 4
        assert run(files.read("s.bin")) == b"abcd"

    def test_file_object(self, files, run):
        assert run(files.write("f.bin", io.BytesIO(b"from file"))) == 9
        assert run(files.read("f.bin")) == b"from file"

    def test_aiofiles_handle(self, files, run, tmp_path):
        import aiofiles

        local = tmp_path / "local.txt"
        local.write_bytes(b"on disk")

        async def go():
            async with aiofiles.open(local, "rb") as f:
                return await files.write("disk.txt", f)

        assert run(go()) == 7
        assert run(files.read("disk.txt")) == b"on disk"

    def test_overwrite(self, seeded, run):
        run(seeded.write("a.txt", "bye"))
        assert run(seeded.read("a.txt")) == b"bye"

    def test_path_normalized(self, files, run):
        run(files.write("/x//y/../z.txt", "z"))
        assert names(run(files.list())) == ["x/z.txt"]

    def test_bad_content(self, files, run):
        with pytest.raises(BadArgumentError):
            run(files.write("a.txt", 42))
        with pytest.raises(BadArgumentError):
            run(files.write("a.txt", None))

    def test_directory_rejected(self, files, run):
        with pytest.raises(BadFileTypeError):
            run(files.write("dir/", "x"))
        with pytest.raises(BadFileTypeError):
            run(files.write("public", "x"))

    def test_write_stream_sink(self, files, run):
        async def go():
            async with await files.create_write_stream("sink.txt") as sink:
                await sink.write(b"sunk")

        run(go())
        assert run(files.read("sink.txt")) == b"sunk"


class TestDelete:
    def test_file(self, seeded, run):
        assert run(seeded.delete("a.txt")) == ["a.txt"]
        with pytest.raises(FileNotExistsError):
            run(seeded.read("a.txt"))

    def test_directory(self, seeded, run):
        deleted = run(seeded.delete("docs/"))
        assert sorted(deleted) == ["docs/x.txt", "docs/y/z.txt"]
        assert run(seeded.list("docs/")) == []
        assert run(seeded.exists("a.txt"))

    def test_missing_is_empty(self, seeded, run):
        assert run(seeded.delete("nope.txt")) == []
        assert run(seeded.delete("nope/")) == []

    def test_progress_callback(self, seeded, run):
        seen = []
        run(seeded.delete("src/", progress_callback=seen.append))
        assert sorted(seen) == ["src/subsrc/a", "src/subsrc/b/c"]

    def test_async_progress_callback(self, seeded, run):
        seen = []

        async def cb(path):
            seen.append(path)

        run(seeded.delete("docs/", progress_callback=cb))
        assert len(seen) == 2

    def test_bad_callback(self, seeded, run):
        with pytest.raises(BadArgumentError):
            run(seeded.delete("a.txt", progress_callback="nope"))

    def test_concurrent_removal_ignored(self, seeded, backend, run):
        with mock.patch.object(backend, "delete",
                               mock.AsyncMock(side_effect=MemoryBackendError(404))):
            assert run(seeded.delete("a.txt")) == ["a.txt"]


class TestGetProperties:
    def test_file(self, files, run):
        p = run(files.get_properties("docs/x.txt"))
        assert not p.is_directory
        assert not p.is_public
        assert p.url == "memory://files/docs/x.txt"

    def test_public_directory(self, files, run):
        p = run(files.get_properties("public"))
        assert p.is_directory
        assert p.is_public

    def test_does_not_check_existence(self, files, run):
        assert run(files.get_properties("ghost/")).is_directory


class TestPresign:
    def test_url(self, seeded, run):
        url = run(seeded.generate_presign_url("a.txt", expiry_in_seconds=60))
        assert url.startswith("memory://files/a.txt?")
        assert "sp=r" in url

    def test_permissions(self, seeded, run):
        url = run(seeded.generate_presign_url("a.txt", expiry_in_seconds=60,
                                              permissions="rwd"))
        assert "sp=rwd" in url

    @pytest.mark.parametrize("expiry", [0, -1, True, 1.5, "60", None])
    def test_bad_expiry(self, seeded, run, expiry):
        with pytest.raises(BadArgumentError):
            run(seeded.generate_presign_url("a.txt", expiry_in_seconds=expiry))

    @pytest.mark.parametrize("perms", ["", "x", "rx", "read"])
    def test_bad_permissions(self, seeded, run, perms):
        with pytest.raises(BadArgumentError):
            run(seeded.generate_presign_url("a.txt", expiry_in_seconds=60,
                                            permissions=perms))

    def test_directory_rejected(self, seeded, run):
        with pytest.raises(BadFileTypeError):
            run(seeded.generate_presign_url("docs/", expiry_in_seconds=60))

    def test_revoke_invalidates(self, seeded, run):
        before = run(seeded.generate_presign_url("a.txt", expiry_in_seconds=60))
        run(seeded.revoke_all_presign_urls())
        after = run(seeded.generate_presign_url("a.txt", expiry_in_seconds=60))
        assert before != after

    def test_backend_unsupported_passes_through(self, seeded, backend, run):
        err = UnsupportedOperationError("no signing")
        with mock.patch.object(backend, "presign_url", mock.AsyncMock(side_effect=err)):
            with pytest.raises(UnsupportedOperationError) as exc_info:
                run(seeded.generate_presign_url("a.txt", expiry_in_seconds=60))
        assert exc_info.value is err


class TestProviderErrors:
    @pytest.mark.parametrize("status, exc_type", [
        (401, BadCredentialsError),
        (403, ForbiddenError),
        (500, InternalError),
        (None, InternalError),
    ])
    def test_status_mapping(self, seeded, backend, run, status, exc_type):
        native = MemoryBackendError(status or 0, "provider says no")
        if status is None:
            native = RuntimeError("socket closed")
        with mock.patch.object(backend, "write_buffer",
                               mock.AsyncMock(side_effect=native)):
            with pytest.raises(exc_type) as exc_info:
                run(seeded.write("a.txt", "x"))
        assert exc_info.value.internal is native
        assert exc_info.value.__cause__ is native
        assert exc_info.value.details["file_path"] == "a.txt"

    def test_list_failure_is_internal(self, seeded, backend, run):
        with mock.patch.object(backend, "list_folder",
                               mock.AsyncMock(side_effect=MemoryBackendError(500))):
            with pytest.raises(InternalError) as exc_info:
                run(seeded.list("docs/"))
        assert exc_info.value.details == {"path": "docs/"}

    def test_message_carries_code(self, seeded, run):
        with pytest.raises(FileNotExistsError, match=r"^\[FileNotExists\] "):
            run(seeded.get_file_info("nope.txt"))


class TestLifecycle:
    def test_refresh_before_every_operation(self, seeded, backend, run):
        refresh = mock.AsyncMock()
        with mock.patch.object(backend, "refresh_if_expired", refresh):
            run(seeded.list("docs/"))
            run(seeded.read("a.txt"))
            run(seeded.write("b.txt", "b"))
            run(seeded.get_properties("b.txt"))
            run(seeded.generate_presign_url("a.txt", expiry_in_seconds=5))
            run(seeded.revoke_all_presign_urls())
        assert refresh.await_count == 6

    def test_context_manager_closes_backend(self, backend, run):
        close = mock.AsyncMock()

        async def go():
            async with Files(backend) as f:
                await f.write("a.txt", "a")

        with mock.patch.object(backend, "close", close):
            run(go())
        close.assert_awaited_once()

    def test_repr(self):
        assert repr(Files(MemoryBackend())).startswith("Files(")

    def test_public_prefix(self):
        f = Files(MemoryBackend(public_prefix="www"))
        assert f.public_prefix == "www"
