"""End-to-end tests for the public list and read API."""

from __future__ import annotations

import asyncio
import builtins
import pathlib
import random
import sys
import threading

import pytest

from archive_fixtures import (
    CONSTRUCTED_ENTRIES,
    CONTENTS,
    NATURAL_ENTRIES,
    NESTED_PASSWORDS_KEY,
    ROOT_PASSWORDS_KEY,
    build_tar,
    compress,
    layout,
)
from tarpeek import (
    CompressionFormatError,
    ConflictingOptionsError,
    InvalidArchiveError,
    InvalidArgumentError,
    InvalidOptionError,
    InvalidPatternError,
    MissingArgumentError,
    NoMatchError,
    SizeExceededError,
    TruncatedInputError,
    UnsupportedCompressionError,
    list_entries,
    list_entries_async,
    read_entry,
    read_entry_async,
)
from tarpeek.core import controller
from tarpeek.core.controller import ArchiveScan
from tarpeek.core.selection import EntryLister

COMPRESSIONS = [
    (None, {}),
    ("gzip", {}),
    ("gzip", {"gzip": True}),
    ("bzip2", {"bzip2": True}),
    ("bzip2", {"use_compress_program": "bzip2"}),
    ("xz", {"xz": True}),
    ("xz", {"I": "xz"}),
    ("lzma", {"lzma": True}),
]


@pytest.mark.parametrize("compression,options", COMPRESSIONS)
def test_list_every_compression(make_archive, compression, options):
    path = make_archive("natural.tar.any", layout(NATURAL_ENTRIES, CONTENTS), compression)
    assert list_entries(path, options) == NATURAL_ENTRIES


@pytest.mark.parametrize("compression,options", COMPRESSIONS)
def test_read_every_compression(make_archive, compression, options):
    path = make_archive("natural.tar.any", layout(NATURAL_ENTRIES, CONTENTS), compression)
    assert read_entry(path, "x/y/rand-bytes.bin", options) == CONTENTS["x/y/rand-bytes.bin"]


def test_read_every_file(natural_tgz):
    for entry, data in CONTENTS.items():
        assert read_entry(natural_tgz, entry) == data


def test_list_with_pattern(simple_tar):
    assert list_entries(simple_tar, pattern="a") == ["a/", "a/b.txt"]
    assert list_entries(simple_tar, {"pattern": "a", "recursion": False}) == ["a/"]
    assert list_entries(simple_tar, pattern="zzz") == []


def test_list_accepts_path_objects(simple_tar):
    assert list_entries(pathlib.Path(simple_tar)) == ["a/", "a/b.txt", "c.txt"]
    assert read_entry(pathlib.Path(simple_tar), "c.txt") == b"top level c\n"


def test_verbatim_read_is_anchored(constructed_tar):
    assert ROOT_PASSWORDS_KEY.encode() in read_entry(constructed_tar, "passwords.txt")
    assert ROOT_PASSWORDS_KEY.encode() in read_entry(constructed_tar, "passwords.txt",
                                                     wildcards=True)


def test_unanchored_wildcard_read_takes_first_in_archive(constructed_tar):
    data = read_entry(constructed_tar, "passwords.txt", wildcards=True, anchored=False)
    assert NESTED_PASSWORDS_KEY.encode() in data


def test_wildcard_read_with_and_without_slash_matching(constructed_tar):
    assert read_entry(constructed_tar, "*/passwords.txt", wildcards=True) == CONTENTS["a/b/c/passwords.txt"]
    assert read_entry(constructed_tar, "*/passwords.txt", wildcards=True,
                      wildcards_match_slash=False) == CONTENTS["x/passwords.txt"]


def test_ignore_case_read(natural_tgz):
    assert read_entry(natural_tgz, "NPM-DEBUG.LOG", ignore_case=True) == CONTENTS["npm-debug.log"]
    with pytest.raises(NoMatchError):
        read_entry(natural_tgz, "NPM-DEBUG.LOG")


def test_read_directory_is_no_match(natural_tgz):
    with pytest.raises(NoMatchError) as excinfo:
        read_entry(natural_tgz, "a/b/")
    assert excinfo.value.pattern == "a/b/"
    assert excinfo.value.kind == "NoMatch"


def test_read_unknown_entry(natural_tgz):
    with pytest.raises(NoMatchError, match="No match for z/ in archive"):
        read_entry(natural_tgz, "z/")


def test_invalid_wildcard_pattern(natural_tgz):
    with pytest.raises(InvalidPatternError):
        read_entry(natural_tgz, "\n", wildcards=True)
    with pytest.raises(InvalidPatternError):
        list_entries(natural_tgz, pattern="a\nb")


def test_max_size(natural_tgz):
    size = len(CONTENTS["x/y/rand-bytes.bin"])
    with pytest.raises(SizeExceededError) as excinfo:
        read_entry(natural_tgz, "x/y/rand-bytes.bin", max_size=1000)
    assert excinfo.value.limit == 1000
    assert excinfo.value.actual == size

    assert read_entry(natural_tgz, "x/y/rand-bytes.bin", max_size=size) == CONTENTS["x/y/rand-bytes.bin"]
    assert read_entry(natural_tgz, "x/y/rand-bytes.bin", max_size=sys.maxsize + 1)


def test_small_chunk_size_setting(monkeypatch, natural_tgz):
    monkeypatch.setenv("TARPEEK_CHUNK_SIZE", "7")
    assert read_entry(natural_tgz, "x/y/rand-bytes.bin") == CONTENTS["x/y/rand-bytes.bin"]


@pytest.mark.parametrize(
    "call",
    [
        lambda: list_entries(None),
        lambda: list_entries(""),
        lambda: read_entry(None, "a"),
        lambda: read_entry("/no/such/archive.tgz", None),
        lambda: read_entry("/no/such/archive.tgz", ""),
    ],
)
def test_missing_arguments(call):
    with pytest.raises(MissingArgumentError):
        call()


def test_wrong_argument_types():
    with pytest.raises(InvalidArgumentError):
        list_entries(42)
    with pytest.raises(InvalidArgumentError):
        read_entry("/no/such/archive.tgz", ["a"])


def test_options_are_validated_before_any_io():
    missing = "/no/such/archive.tgz"
    with pytest.raises(ConflictingOptionsError):
        list_entries(missing, gzip=True, use_compress_program="xz")
    with pytest.raises(UnsupportedCompressionError):
        read_entry(missing, "a", use_compress_program="compress")
    with pytest.raises(InvalidOptionError):
        read_entry(missing, "a", max_size="any")
    with pytest.raises(InvalidOptionError):
        read_entry(missing, "a", max_size=-1)


def test_missing_archive(tmp_path):
    missing = str(tmp_path / "absent.tgz")
    with pytest.raises(FileNotFoundError) as excinfo:
        list_entries(missing)
    assert excinfo.value.filename == missing


def test_truncated_gzip_archive(tmp_path):
    data = compress(build_tar(layout(NATURAL_ENTRIES, CONTENTS)), "gzip")
    path = tmp_path / "broken.tgz"
    path.write_bytes(data[: len(data) // 2])
    with pytest.raises(TruncatedInputError) as excinfo:
        read_entry(str(path), "a/b/c")
    assert excinfo.value.path == str(path)
    with pytest.raises(TruncatedInputError):
        list_entries(str(path))


def test_truncated_naked_archive(tmp_path):
    data = build_tar(layout(CONSTRUCTED_ENTRIES, CONTENTS))
    path = tmp_path / "broken.tar"
    # Cut inside the body of the first entry.
    path.write_bytes(data[:612])
    with pytest.raises(TruncatedInputError):
        list_entries(str(path))
    with pytest.raises(TruncatedInputError):
        read_entry(str(path), "x/y/rand-bytes.bin")


def test_gzip_of_random_data_is_not_a_tar(tmp_path):
    path = tmp_path / "random.tgz"
    path.write_bytes(compress(random.Random(1234).randbytes(4096), "gzip"))
    with pytest.raises(InvalidArchiveError):
        read_entry(str(path), "a/b/c")
    with pytest.raises(InvalidArchiveError):
        list_entries(str(path))


def test_explicit_compression_that_does_not_fit(simple_tar, natural_tgz):
    with pytest.raises(CompressionFormatError):
        list_entries(simple_tar, gzip=True)
    with pytest.raises(CompressionFormatError):
        list_entries(natural_tgz, xz=True)


def test_unknown_options_do_not_fail(caplog, simple_tar):
    assert list_entries(simple_tar, {"yada": 1, "dada": True}) == ["a/", "a/b.txt", "c.txt"]
    assert "Invalid option(s) given: yada, dada" in caplog.text


def test_async_api_matches_blocking_api(natural_tgz):
    async def scenario():
        listed = await list_entries_async(natural_tgz, pattern="x")
        data = await read_entry_async(natural_tgz, "passwords.txt")
        return listed, data

    listed, data = asyncio.run(scenario())
    assert listed == list_entries(natural_tgz, pattern="x")
    assert data == CONTENTS["passwords.txt"]


def test_async_calls_run_concurrently(natural_tgz):
    async def scenario():
        return await asyncio.gather(*(read_entry_async(natural_tgz, entry) for entry in CONTENTS))

    assert asyncio.run(scenario()) == list(CONTENTS.values())


def test_async_errors_propagate(natural_tgz):
    async def scenario():
        await read_entry_async(natural_tgz, "nothing-here")

    with pytest.raises(NoMatchError):
        asyncio.run(scenario())


def test_async_argument_errors_raise_when_awaited():
    with pytest.raises(MissingArgumentError):
        asyncio.run(list_entries_async(None))


def test_listing_is_repeatable(natural_tgz):
    assert list_entries(natural_tgz, pattern="a/b") == list_entries(natural_tgz, pattern="a/b")


def test_anchoring_of_a_bare_name(make_archive):
    path = make_archive("anchor.tar", [("x", b"root x"), ("a/b/x", b"nested x")])
    assert list_entries(path, pattern="x") == ["x"]
    assert list_entries(path, pattern="x", anchored=False) == ["x", "a/b/x"]
    assert read_entry(path, "x") == b"root x"
    assert read_entry(path, "x", wildcards=True, anchored=False) == b"root x"


@pytest.mark.parametrize("compression", [None, "gzip"])
def test_empty_archive_has_no_entries(tmp_path, compression):
    path = tmp_path / "empty.tar"
    path.write_bytes(compress(b"", compression))
    assert list_entries(str(path)) == []
    assert list_entries(str(path), pattern="a") == []
    with pytest.raises(NoMatchError):
        read_entry(str(path), "a")


def test_cancelling_async_listing_releases_the_archive(monkeypatch, simple_tar):
    opened = []
    scanning = threading.Event()
    cancel_requested = threading.Event()

    def tracking_open(*args, **kwargs):
        handle = builtins.open(*args, **kwargs)
        opened.append(handle)
        return handle

    original_accept = EntryLister.accept
    original_cancel = ArchiveScan.cancel

    def blocking_accept(self, entry):
        scanning.set()
        cancel_requested.wait(timeout=5)
        return original_accept(self, entry)

    def recording_cancel(self):
        original_cancel(self)
        cancel_requested.set()

    monkeypatch.setattr(controller, "open", tracking_open, raising=False)
    monkeypatch.setattr(EntryLister, "accept", blocking_accept)
    monkeypatch.setattr(ArchiveScan, "cancel", recording_cancel)

    async def scenario():
        task = asyncio.ensure_future(list_entries_async(simple_tar))
        while not scanning.is_set():
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert cancel_requested.is_set()
    assert len(opened) == 1
    assert opened[0].closed
