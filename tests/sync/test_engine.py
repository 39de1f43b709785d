"""Tests for the collect/distribute engine."""

import os
from pathlib import Path

import pytest

from stall.core.config import RunOptions
from stall.core.types import (
    BothMissingError,
    Direction,
    InvalidNameError,
    NothingToCopyError,
    NotFoundError,
)
from stall.store import RecordStore
from stall.sync.compare import Staleness
from stall.sync.decisions import SyncAction
from stall.sync.engine import RecordOutcome, SyncEngine, SyncError

T0 = 1_700_000_000_000_000_000
SECOND = 1_000_000_000


def _write(path: Path, content: str, mtime_ns: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    os.utime(path, ns=(mtime_ns, mtime_ns))
    return path


@pytest.fixture
def stall_dir(tmp_path: Path) -> Path:
    path = tmp_path / "stall"
    path.mkdir()
    return path


@pytest.fixture
def remote_dir(tmp_path: Path) -> Path:
    path = tmp_path / "remote"
    path.mkdir()
    return path


@pytest.fixture
def store(remote_dir: Path) -> RecordStore:
    """Store tracking remote files a, b and c."""
    store = RecordStore()
    for name in ("a", "b", "c"):
        store.insert(name, remote_dir / name)
    return store


class TestCollect:
    """Tests for copying remote files into the stall."""

    def test_copies_newer_remote(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """A newer remote should be copied into the stall."""
        _write(stall_dir / "a", "old", T0)
        _write(remote_dir / "a", "new", T0 + SECOND)

        result = SyncEngine(store, stall_dir).collect(["a"])

        assert (stall_dir / "a").read_text() == "new"
        assert (stall_dir / "a").stat().st_mtime_ns == T0 + SECOND
        assert [o.record.local_name for o in result.copied] == ["a"]
        assert result.success

    def test_copies_missing_stall_file(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """A file missing from the stall should be collected."""
        _write(remote_dir / "a", "content", T0)

        SyncEngine(store, stall_dir).collect(["a"])

        assert (stall_dir / "a").read_text() == "content"

    def test_equal_is_not_written(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """Equal files should be skipped without touching either side."""
        _write(stall_dir / "a", "stall", T0)
        _write(remote_dir / "a", "remote", T0)

        result = SyncEngine(store, stall_dir).collect(["a"])

        assert (stall_dir / "a").read_text() == "stall"
        assert len(result.skipped) == 1
        assert result.copied == []

    def test_force_copies_equal(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """Force should copy even when files are equal."""
        _write(stall_dir / "a", "stall", T0)
        _write(remote_dir / "a", "remote", T0)

        engine = SyncEngine(store, stall_dir, options=RunOptions(force=True))
        result = engine.collect(["a"])

        assert (stall_dir / "a").read_text() == "remote"
        assert result.outcomes[0].decision.forced

    def test_remote_missing_is_an_error(
        self, store: RecordStore, stall_dir: Path
    ) -> None:
        """Collecting from a missing remote reports nothing to copy."""
        _write(stall_dir / "a", "stall", T0)

        result = SyncEngine(store, stall_dir).collect(["a"])

        assert isinstance(result.outcomes[0].error, NothingToCopyError)
        assert (stall_dir / "a").read_text() == "stall"
        assert not result.success

    def test_collect_is_idempotent(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """A second collect after a copy should skip."""
        _write(remote_dir / "a", "content", T0)
        engine = SyncEngine(store, stall_dir)

        engine.collect(["a"])
        second = engine.collect(["a"])

        assert second.outcomes[0].comparison.staleness is Staleness.EQUAL
        assert second.copied == []


class TestDistribute:
    """Tests for copying stalled files out to their remotes."""

    def test_copies_newer_stall(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """A newer stalled file should overwrite its remote."""
        _write(stall_dir / "b", "edited", T0 + SECOND)
        _write(remote_dir / "b", "original", T0)

        SyncEngine(store, stall_dir).distribute(["b"])

        assert (remote_dir / "b").read_text() == "edited"

    def test_newer_remote_is_skipped(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """Distribute never overwrites a newer remote without force."""
        _write(stall_dir / "b", "stall", T0)
        _write(remote_dir / "b", "remote", T0 + SECOND)

        result = SyncEngine(store, stall_dir).distribute(["b"])

        assert (remote_dir / "b").read_text() == "remote"
        assert result.outcomes[0].decision.action is SyncAction.SKIP

    def test_writes_through_symlinked_remote(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path, tmp_path: Path
    ) -> None:
        """A symlinked remote keeps its link and the linked file gets the content."""
        real = _write(tmp_path / "dotfiles" / "a", "old", T0)
        (remote_dir / "a").symlink_to(real)
        _write(stall_dir / "a", "new", T0 + SECOND)

        result = SyncEngine(store, stall_dir).distribute(["a"])

        assert [o.record.local_name for o in result.copied] == ["a"]
        assert (remote_dir / "a").is_symlink()
        assert real.read_text() == "new"
        second = SyncEngine(store, stall_dir).distribute(["a"])
        assert second.outcomes[0].comparison.staleness is Staleness.EQUAL

    def test_collect_into_symlinked_stall_file(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path, tmp_path: Path
    ) -> None:
        """Collect also writes through a symlink on the stall side."""
        real = _write(tmp_path / "elsewhere" / "a", "old", T0)
        (stall_dir / "a").symlink_to(real)
        _write(remote_dir / "a", "new", T0 + SECOND)

        SyncEngine(store, stall_dir).collect(["a"])

        assert (stall_dir / "a").is_symlink()
        assert real.read_text() == "new"

    def test_creates_missing_remote(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """A missing remote, including its directory, should be created."""
        store.insert("deep", remote_dir / "x" / "y" / "deep")
        _write(stall_dir / "deep", "content", T0)

        SyncEngine(store, stall_dir).distribute(["deep"])

        assert (remote_dir / "x" / "y" / "deep").read_text() == "content"

    def test_relative_remote_resolved_against_stall(
        self, stall_dir: Path
    ) -> None:
        """Relative remote paths are taken relative to the stall directory."""
        store = RecordStore()
        store.insert("notes", "../elsewhere/notes.txt")
        _write(stall_dir / "notes", "content", T0)

        SyncEngine(store, stall_dir).distribute()

        assert (stall_dir.parent / "elsewhere" / "notes.txt").read_text() == "content"


class TestErrorsAndModes:
    """Tests for error handling, dry run and name selection."""

    def test_both_missing_even_when_forced(
        self, store: RecordStore, stall_dir: Path
    ) -> None:
        """Both sides missing is an error regardless of force."""
        engine = SyncEngine(store, stall_dir, options=RunOptions(force=True))
        result = engine.distribute(["a"])

        assert isinstance(result.outcomes[0].error, BothMissingError)

    def test_dry_run_writes_nothing(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """A dry run reports copies without doing them."""
        _write(stall_dir / "a", "new", T0 + SECOND)
        _write(remote_dir / "a", "old", T0)

        engine = SyncEngine(store, stall_dir, options=RunOptions(dry_run=True))
        result = engine.distribute(["a"])

        assert (remote_dir / "a").read_text() == "old"
        assert result.dry_run
        assert len(result.copied) == 1
        assert not result.outcomes[0].copied

    def test_strict_aborts_on_first_error(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """Strict mode stops at the first failing record."""
        (remote_dir / "a").mkdir()
        _write(stall_dir / "a", "a", T0)
        for name in ("b", "c"):
            _write(stall_dir / name, name, T0 + SECOND)
            _write(remote_dir / name, "old", T0)

        engine = SyncEngine(store, stall_dir, options=RunOptions(strict=True))
        with pytest.raises(SyncError) as exc_info:
            engine.distribute()

        assert exc_info.value.outcome.record.local_name == "a"
        assert len(exc_info.value.result.outcomes) == 1
        assert (remote_dir / "b").read_text() == "old"
        assert (remote_dir / "c").read_text() == "old"

    def test_strict_keeps_earlier_copies(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """Copies made before a strict abort are not rolled back."""
        _write(stall_dir / "a", "a", T0 + SECOND)
        _write(remote_dir / "a", "old", T0)

        engine = SyncEngine(store, stall_dir, options=RunOptions(strict=True))
        with pytest.raises(SyncError) as exc_info:
            engine.distribute()

        assert exc_info.value.outcome.record.local_name == "b"
        assert (remote_dir / "a").read_text() == "a"

    def test_warn_mode_processes_everything(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """Without strict mode every record is attempted."""
        (remote_dir / "a").mkdir()
        _write(stall_dir / "a", "a", T0)
        for name in ("b", "c"):
            _write(stall_dir / name, name, T0 + SECOND)
            _write(remote_dir / name, "old", T0)

        result = SyncEngine(store, stall_dir).distribute()

        assert [o.record.local_name for o in result.failed] == ["a"]
        assert [o.record.local_name for o in result.copied] == ["b", "c"]
        assert (remote_dir / "c").read_text() == "c"

    def test_unknown_name_fails_before_copying(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """An unknown name aborts the run before any record is processed."""
        _write(stall_dir / "a", "new", T0 + SECOND)
        _write(remote_dir / "a", "old", T0)

        with pytest.raises(NotFoundError):
            SyncEngine(store, stall_dir).distribute(["a", "zzz"])

        assert (remote_dir / "a").read_text() == "old"

    def test_removed_record_is_not_synced(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """A record removed from the store is no longer processed."""
        _write(stall_dir / "a", "new", T0 + SECOND)
        _write(remote_dir / "a", "old", T0)
        store.remove("a")

        result = SyncEngine(store, stall_dir).distribute()

        assert "a" not in [o.record.local_name for o in result.outcomes]
        assert (remote_dir / "a").read_text() == "old"

    def test_unreadable_side(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """A directory in place of a file is reported, not copied over."""
        (remote_dir / "a").mkdir()
        _write(stall_dir / "a", "content", T0)

        result = SyncEngine(store, stall_dir).distribute(["a"])

        outcome = result.outcomes[0]
        assert outcome.comparison.staleness is Staleness.UNREADABLE
        assert "not a regular file" in str(outcome.error)
        assert (remote_dir / "a").is_dir()

    def test_entry_on_stall_file_is_refused(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """A loaded entry named like the stall file never overwrites it."""
        store.insert(".stall", remote_dir / ".stall")
        _write(stall_dir / ".stall", "config", T0)
        _write(remote_dir / ".stall", "remote", T0 + SECOND)

        result = SyncEngine(store, stall_dir).collect([".stall"])

        outcome = result.outcomes[0]
        assert isinstance(outcome.error, InvalidNameError)
        assert outcome.decision.action is SyncAction.ERROR
        assert (stall_dir / ".stall").read_text() == "config"

    def test_remote_on_stall_file_is_refused(
        self, stall_dir: Path, tmp_path: Path
    ) -> None:
        """An entry whose remote is the stall file is never distributed."""
        stall_file = tmp_path / "mystall.list"
        _write(stall_file, "config", T0)
        store = RecordStore(load_path=stall_file)
        store.insert("copy", stall_file)
        _write(stall_dir / "copy", "newer", T0 + SECOND)

        result = SyncEngine(store, stall_dir, options=RunOptions(force=True)).distribute()

        assert isinstance(result.outcomes[0].error, InvalidNameError)
        assert stall_file.read_text() == "config"

    def test_callback_sees_every_outcome(
        self, store: RecordStore, stall_dir: Path, remote_dir: Path
    ) -> None:
        """The progress callback is invoked once per record, in order."""
        seen: list[RecordOutcome] = []
        engine = SyncEngine(store, stall_dir, on_outcome=seen.append)

        engine.run(Direction.COLLECT)

        assert [o.record.local_name for o in seen] == ["a", "b", "c"]
