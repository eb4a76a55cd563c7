# tests/test_archive.py
import io
import zipfile

import pytest

from telecloud.core.exceptions import InvalidArgument
from telecloud.storage_adapters.archive import ArchiveEntry, build_archive, unique_entry_names


def read_zip(chunks):
    return zipfile.ZipFile(io.BytesIO(b"".join(chunks)))


def test_archive_keeps_request_order(relay):
    first = relay.store(b"birinci", "1.txt", "text/plain")
    second = relay.store(b"ikinci", "2.txt", "text/plain")

    chunks = build_archive(relay, [
        ArchiveEntry(second.handle, "2.txt"),
        ArchiveEntry(first.handle, "1.txt"),
    ])

    with read_zip(chunks) as zf:
        assert zf.namelist() == ["2.txt", "1.txt"]
        assert zf.read("1.txt") == b"birinci"
        assert zf.testzip() is None


def test_failed_fetch_becomes_error_entry(relay):
    good = relay.store(b"saglam", "iyi.txt", "text/plain")
    bad = relay.store(b"bozuk", "kotu.txt", "text/plain")
    relay.fail_handles.add(bad.handle)

    chunks = build_archive(relay, [
        ArchiveEntry(bad.handle, "kotu.txt", ref="file-9"),
        ArchiveEntry(good.handle, "iyi.txt", ref="file-1"),
    ])

    with read_zip(chunks) as zf:
        assert zf.namelist() == ["error-file-9.txt", "iyi.txt"]
        message = zf.read("error-file-9.txt").decode("utf-8")
        assert "kotu.txt" in message
        assert "file not found" in message
        assert zf.read("iyi.txt") == b"saglam"


def test_broken_stream_is_replaced_by_error_entry(relay):
    broken = relay.store(b"yarim kalan", "yarim.txt", "text/plain")
    good = relay.store(b"tam", "tam.txt", "text/plain")
    relay.break_handles.add(broken.handle)

    chunks = build_archive(relay, [
        ArchiveEntry(broken.handle, "yarim.txt", ref="f1"),
        ArchiveEntry(good.handle, "tam.txt", ref="f2"),
    ])

    with read_zip(chunks) as zf:
        assert zf.namelist() == ["error-f1.txt", "tam.txt"]
        assert "yarim.txt" in zf.read("error-f1.txt").decode("utf-8")
        assert zf.read("tam.txt") == b"tam"


def test_archive_is_produced_incrementally(relay):
    entries = []
    for i in range(3):
        stored = relay.store(bytes([i]) * 1000, f"{i}.bin", "application/octet-stream")
        entries.append(ArchiveEntry(stored.handle, f"{i}.bin"))

    generator = build_archive(relay, entries)
    first_chunk = next(generator)
    assert first_chunk.startswith(b"PK\x03\x04")
    rest = list(generator)
    assert len(rest) >= 2


def test_limits_are_checked_before_fetching(relay):
    relay.fail_handles.add("h")
    with pytest.raises(InvalidArgument):
        build_archive(relay, [ArchiveEntry("h", "a.txt")] * 201)
    with pytest.raises(InvalidArgument):
        build_archive(relay, [])


def test_unique_entry_names():
    names = unique_entry_names(["a.txt", "b.txt", "A.txt", "a.txt", "a (1).txt"])
    assert names == ["a.txt", "b.txt", "A (1).txt", "a (2).txt", "a (1) (1).txt"]
