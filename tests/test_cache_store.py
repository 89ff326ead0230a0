"""Tests for the directory-backed blob cache."""

import json

import pytest

from cache.store import LocalBlobCache
from errors import CacheError


@pytest.fixture
def store(tmp_path):
    return LocalBlobCache(tmp_path / "store")


def _populate(directory, files):
    directory.mkdir(parents=True, exist_ok=True)
    for name, body in files.items():
        path = directory / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body)


class TestSaveRestore:
    """Saving and restoring entries."""

    def test_directory_round_trip(self, store, tmp_path):
        src = tmp_path / "cache"
        _populate(src, {"o/a.o": "object", "h/b.h": "header"})
        store.save([src], "k1")

        dest = tmp_path / "restored"
        assert store.restore([dest], "k1") == "k1"
        assert (dest / "o" / "a.o").read_text() == "object"
        assert (dest / "h" / "b.h").read_text() == "header"

    def test_single_file(self, store, tmp_path):
        src = tmp_path / "zig.tar.xz"
        src.write_bytes(b"\xfd7zXZ payload")
        store.save([src], "tarball")
        dest = tmp_path / "slot" / "zig.tar.xz"
        assert store.restore([dest], "tarball") == "tarball"
        assert dest.read_bytes() == b"\xfd7zXZ payload"

    def test_miss_returns_none(self, store, tmp_path):
        assert store.restore([tmp_path / "x"], "missing") is None

    def test_restore_keys_exact_only(self, store, tmp_path):
        src = tmp_path / "f"
        src.write_text("x")
        store.save([src], "setup-zig-cache-job-zig-x86_64-linux-0.14.1")
        hit = store.restore([tmp_path / "d"], "setup-zig-cache-job-zig-x86_64-linux-0.14", ("setup-zig-cache-job-zig",))
        assert hit is None

    def test_fallback_key_matched(self, store, tmp_path):
        src = tmp_path / "f"
        src.write_text("x")
        store.save([src], "base")
        assert store.restore([tmp_path / "d"], "base-user", ("base",)) == "base"

    def test_new_save_supersedes(self, store, tmp_path):
        src = tmp_path / "f"
        src.write_text("old")
        store.save([src], "k")
        src.write_text("new")
        store.save([src], "k")
        dest = tmp_path / "out"
        store.restore([dest], "k")
        assert dest.read_text() == "new"


class TestFailures:
    """Error paths raise CacheError."""

    def test_missing_path(self, store, tmp_path):
        with pytest.raises(CacheError) as excinfo:
            store.save([tmp_path / "nope"], "k")
        assert "Path Validation Error" in str(excinfo.value)

    def test_corrupted_archive_detected(self, store, tmp_path):
        src = tmp_path / "f"
        src.write_text("x")
        store.save([src], "k")
        archive = store._entry_dir("k") / LocalBlobCache.ARCHIVE
        archive.write_bytes(b"garbage")
        with pytest.raises(CacheError):
            store.restore([tmp_path / "d"], "k")

    def test_manifest_key_mismatch(self, store, tmp_path):
        src = tmp_path / "f"
        src.write_text("x")
        store.save([src], "k")
        manifest = store._entry_dir("k") / LocalBlobCache.MANIFEST
        data = json.loads(manifest.read_text())
        data["key"] = "other"
        manifest.write_text(json.dumps(data))
        with pytest.raises(CacheError):
            store.restore([tmp_path / "d"], "k")


class TestCorruptEntries:
    """An unusable entry does not hide later restore keys."""

    def test_corrupt_primary_falls_back(self, store, tmp_path):
        src = tmp_path / "cache"
        _populate(src, {"o/a.o": "base build"})
        store.save([src], "base")
        store.save([src], "base-user")
        (store._entry_dir("base-user") / LocalBlobCache.ARCHIVE).write_bytes(b"junk")

        dest = tmp_path / "restored"
        assert store.restore([dest], "base-user", ("base",)) == "base"
        assert (dest / "o" / "a.o").read_text() == "base build"

    def test_unreadable_manifest_falls_back(self, store, tmp_path):
        src = tmp_path / "f"
        src.write_text("x")
        store.save([src], "base")
        store.save([src], "base-user")
        (store._entry_dir("base-user") / LocalBlobCache.MANIFEST).write_text("{not json")
        assert store.restore([tmp_path / "d"], "base-user", ("base",)) == "base"

    def test_every_key_corrupt_raises(self, store, tmp_path):
        src = tmp_path / "f"
        src.write_text("x")
        store.save([src], "base")
        store.save([src], "base-user")
        for key in ("base", "base-user"):
            (store._entry_dir(key) / LocalBlobCache.ARCHIVE).write_bytes(b"junk")
        with pytest.raises(CacheError):
            store.restore([tmp_path / "d"], "base-user", ("base",))
