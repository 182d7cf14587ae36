"""Tests for the lock manager."""

import errno
import os
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from src.coordination import ConflictDetector, LockManager, LockOwner
from src.workspace.errors import LockExists, LockParseError, NotOwner


class TestAcquire:
    """Test lock acquisition."""

    def test_acquire_returns_lock(self, locks):
        """Acquire records owner, timestamp and reason."""
        lock = locks.acquire("src/x.ts", project="A", agent="alice", protocol="feature", reason="refactor")

        assert lock.file == "src/x.ts"
        assert lock.locked_by.project == "A"
        assert lock.locked_by.agent == "alice"
        assert lock.locked_by.protocol == "feature"
        assert lock.reason == "refactor"
        assert lock.since.tzinfo is not None

    def test_acquire_persists_under_workspace(self, locks, workspace, settings):
        locks.acquire("src/x.ts", project="A", agent="alice", protocol="feature")

        assert (settings.locks_path(workspace) / "src%2Fx.ts.yaml").is_file()

    def test_reason_is_omitted_when_absent(self, locks, workspace, settings):
        locks.acquire("src/x.ts", project="A", agent="alice", protocol="feature")

        record = (settings.locks_path(workspace) / "src%2Fx.ts.yaml").read_text(encoding="utf-8")
        assert "reason" not in record

    def test_acquire_twice_fails(self, locks):
        """A held lock cannot be acquired again, even by its owner."""
        locks.acquire("src/x.ts", project="A", agent="alice", protocol="feature")

        with pytest.raises(LockExists, match="src/x.ts"):
            locks.acquire("src/x.ts", project="B", agent="bob", protocol="fix")

    def test_separator_variants_are_one_resource(self, locks):
        """src\\x.ts and src/x.ts contend for the same lock."""
        locks.acquire("src/x.ts", project="A", agent="alice", protocol="feature")

        with pytest.raises(LockExists):
            locks.acquire("src\\x.ts", project="B", agent="bob", protocol="fix")

    def test_failed_write_does_not_leave_a_lock(self, locks, monkeypatch):
        """A disk error during acquire leaves the file unlocked for everyone."""
        def fail(fd):
            raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr(os, "fsync", fail)
        with pytest.raises(OSError):
            locks.acquire("a.ts", project="A", agent="alice", protocol="feature")
        monkeypatch.undo()

        assert locks.list_active() == []
        assert ConflictDetector(locks).check_conflicts(["a.ts"], "B") == []
        lock = locks.acquire("a.ts", project="B", agent="bob", protocol="fix")
        assert lock.locked_by.project == "B"

    def test_concurrent_acquire_has_one_winner(self, workspace, settings):
        """Exactly one of 100 simultaneous acquires succeeds."""
        n = 100
        barrier = threading.Barrier(n)

        def attempt(i: int) -> str:
            manager = LockManager(workspace, settings)
            barrier.wait()
            try:
                manager.acquire("shared.ts", project=f"p{i}", agent=f"a{i}", protocol="race")
            except LockExists:
                return "exists"
            return "acquired"

        with ThreadPoolExecutor(max_workers=n) as pool:
            results = list(pool.map(attempt, range(n)))

        assert results.count("acquired") == 1
        assert results.count("exists") == n - 1
        assert len(LockManager(workspace, settings).list_active()) == 1


class TestRelease:
    """Test lock release."""

    def test_release_removes_lock(self, locks):
        locks.acquire("src/x.ts", project="A", agent="alice", protocol="feature")

        assert locks.release("src/x.ts") is True
        assert locks.get("src/x.ts") is None

    def test_release_unheld_returns_false(self, locks):
        """Release is idempotent."""
        assert locks.release("unheld-file") is False
        assert locks.release("unheld-file", owner="A") is False

    def test_release_by_non_owner_fails(self, locks):
        """Wrong owner raises NotOwner and the lock stays."""
        locks.acquire("f", project="A", agent="alice", protocol="feature")

        with pytest.raises(NotOwner) as exc_info:
            locks.release("f", owner="B")

        assert exc_info.value.project == "A"
        assert exc_info.value.agent == "alice"
        assert exc_info.value.held_by == LockOwner(project="A", agent="alice", protocol="feature")
        assert locks.get("f") is not None

    def test_refused_release_leaves_only_the_record(self, locks):
        locks.acquire("f", project="A", agent="alice", protocol="feature")

        with pytest.raises(NotOwner):
            locks.release("f", owner="B")

        assert [p.name for p in locks.store.directory.iterdir()] == ["f.yaml"]

    def test_checked_release_of_corrupt_record_fails(self, locks):
        """An unreadable record is not released by an ownership check."""
        locks.store.directory.mkdir(parents=True)
        locks.store.path_for("f").write_text("{not yaml", encoding="utf-8")

        with pytest.raises(LockParseError):
            locks.release("f", owner="A")

        assert locks.store.path_for("f").exists()

    @pytest.mark.parametrize("owner", ["A", "alice"])
    def test_release_by_project_or_agent(self, locks, owner):
        """Either the holding project or agent may release."""
        locks.acquire("f", project="A", agent="alice", protocol="feature")

        assert locks.release("f", owner=owner) is True
        assert locks.get("f") is None

    def test_lock_can_be_reacquired_after_release(self, locks):
        locks.acquire("f", project="A", agent="alice", protocol="feature")
        locks.release("f")

        lock = locks.acquire("f", project="B", agent="bob", protocol="fix")
        assert lock.locked_by.project == "B"

    def test_unchecked_release_removes_corrupt_record(self, locks):
        """Manual cleanup works even when the record cannot be parsed."""
        locks.store.directory.mkdir(parents=True)
        locks.store.path_for("f").write_text("{not yaml", encoding="utf-8")

        assert locks.release("f") is True


class TestListActive:
    """Test lock enumeration."""

    def test_lists_all_locks(self, locks):
        locks.acquire("a.ts", project="A", agent="alice", protocol="feature")
        locks.acquire("b.ts", project="B", agent="bob", protocol="fix")

        active = {lock.file: lock.locked_by.project for lock in locks.list_active()}

        assert active == {"a.ts": "A", "b.ts": "B"}

    def test_skips_corrupt_records(self, locks):
        locks.acquire("a.ts", project="A", agent="alice", protocol="feature")
        locks.store.path_for("junk").write_text("- just\n- a list\n", encoding="utf-8")

        assert [lock.file for lock in locks.list_active()] == ["a.ts"]

    def test_empty_workspace(self, locks):
        assert locks.list_active() == []
