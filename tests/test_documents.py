"""
Tests for DocumentSnapshotStore — versioned snapshots per logical path

Tests verify:
- acquire() starts at version 0, update() bumps by exactly one
- update() of an unknown path behaves as acquire()
- source_path redirects the read without changing identity
- failed reads raise and change nothing
- per-path locking serializes the same path only
"""

import threading
import time

import pytest

from tsunami.core import DocumentSnapshotStore
from tsunami.errors import LocalProcessingError, SnapshotReadError


@pytest.fixture
def store():
    return DocumentSnapshotStore()


class TestVersions:
    """Version numbering."""

    def test_acquire_starts_at_zero(self, store, tmp_path):
        """A first acquisition is version 0."""
        path = tmp_path / "a.ts"
        path.write_text("export const a = 1;\n")

        snapshot = store.acquire(str(path))

        assert snapshot.version == 0
        assert snapshot.text == "export const a = 1;\n"
        assert snapshot.file_path == str(path)

    def test_update_increments_by_one(self, store, tmp_path):
        """Each update of a known path adds exactly one."""
        path = tmp_path / "a.ts"
        path.write_text("v0")
        store.acquire(str(path))

        path.write_text("v1")
        first = store.update(str(path))
        path.write_text("v2")
        second = store.update(str(path))

        assert (first.version, first.text) == (1, "v1")
        assert (second.version, second.text) == (2, "v2")

    def test_update_unknown_path_acquires(self, store, tmp_path):
        """update() of an unseen path starts it at version 0."""
        path = tmp_path / "new.ts"
        path.write_text("x")

        snapshot = store.update(str(path))

        assert snapshot.version == 0
        assert str(path) in store

    def test_acquire_resets_version(self, store, tmp_path):
        """A fresh acquire discards the version history."""
        path = tmp_path / "a.ts"
        path.write_text("x")
        store.acquire(str(path))
        store.update(str(path))

        assert store.acquire(str(path)).version == 0


class TestSourcePath:
    """Reading from a backing file other than the logical path."""

    def test_source_path_supplies_text(self, store, tmp_path):
        """Text comes from source_path; identity stays the logical path."""
        logical = tmp_path / "a.ts"
        logical.write_text("on disk")
        buffer = tmp_path / "unsaved.tmp"
        buffer.write_text("in the editor")
        store.acquire(str(logical))

        snapshot = store.update(str(logical), source_path=str(buffer))

        assert snapshot.file_path == str(logical)
        assert snapshot.text == "in the editor"
        assert snapshot.version == 1
        assert str(buffer) not in store

    def test_logical_path_need_not_exist(self, store, tmp_path):
        """An unsaved new file can be tracked through its temp copy."""
        buffer = tmp_path / "buffer.tmp"
        buffer.write_text("export const x = 1;")

        snapshot = store.update(str(tmp_path / "not-yet-saved.ts"), source_path=str(buffer))

        assert snapshot.text == "export const x = 1;"


class TestReadFailures:
    """Missing or unreadable files."""

    def test_missing_file_raises(self, store, tmp_path):
        """A missing file is an error, never an empty snapshot."""
        with pytest.raises(SnapshotReadError) as exc:
            store.acquire(str(tmp_path / "missing.ts"))

        assert "missing.ts" in str(exc.value)
        assert isinstance(exc.value, LocalProcessingError)
        assert len(store) == 0

    def test_failed_update_keeps_previous(self, store, tmp_path):
        """A failed re-read does not bump the version."""
        path = tmp_path / "a.ts"
        path.write_text("original")
        store.acquire(str(path))

        with pytest.raises(SnapshotReadError):
            store.update(str(path), source_path=str(tmp_path / "gone.tmp"))

        current = store.get(str(path))
        assert (current.version, current.text) == (0, "original")

    def test_undecodable_bytes_raise(self, store, tmp_path):
        """Invalid UTF-8 is reported, not replaced."""
        path = tmp_path / "bad.ts"
        path.write_bytes(b"\xff\xfe\x00bad")

        with pytest.raises(SnapshotReadError) as exc:
            store.acquire(str(path))
        assert "utf-8" in str(exc.value)

    def test_error_names_both_paths(self, store, tmp_path):
        """When reading through a temp copy, both paths are reported."""
        error = SnapshotReadError("a.ts", "/tmp/x", "No such file or directory")
        assert "/tmp/x" in str(error)
        assert "a.ts" in str(error)


class TestLocking:
    """Per-path mutual exclusion."""

    def test_same_path_is_serialized(self, store):
        """Two holders of the same path never overlap."""
        active = []
        overlaps = []

        def hold():
            with store.locked("a.ts"):
                active.append(1)
                if len(active) > 1:
                    overlaps.append(True)
                time.sleep(0.02)
                active.pop()

        threads = [threading.Thread(target=hold) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert overlaps == []

    def test_different_paths_do_not_block(self, store):
        """Holding one path leaves another path free."""
        acquired = threading.Event()

        def take_other():
            with store.locked("b.ts"):
                acquired.set()

        with store.locked("a.ts"):
            t = threading.Thread(target=take_other)
            t.start()
            t.join(timeout=2)

        assert acquired.is_set()

    def test_lock_is_reentrant(self, store):
        """A holder can take its own path's lock again."""
        with store.locked("a.ts"):
            with store.locked("a.ts"):
                pass

    def test_paths_in_registration_order(self, store, tmp_path):
        """paths() lists tracked files in the order they were first seen."""
        for name in ("b.ts", "a.ts", "c.ts"):
            (tmp_path / name).write_text("")
            store.acquire(str(tmp_path / name))

        assert [p.rsplit("/", 1)[-1] for p in store.paths()] == ["b.ts", "a.ts", "c.ts"]
