"""Tests for staleness classification."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from stall.sync.compare import FileState, MtimeComparator, Staleness

T0 = 1_700_000_000_000_000_000


def _write(path: Path, content: str, mtime_ns: int) -> Path:
    path.write_text(content)
    os.utime(path, ns=(mtime_ns, mtime_ns))
    return path


@pytest.fixture
def comparator() -> MtimeComparator:
    return MtimeComparator()


class TestFileState:
    """Tests for FileState.read."""

    def test_existing_file(self, tmp_path: Path) -> None:
        """A regular file reports its size and mtime."""
        path = _write(tmp_path / "f", "hello", T0)
        state = FileState.read(path)

        assert state.exists
        assert state.readable
        assert state.mtime_ns == T0
        assert state.size == 5

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file is not an error."""
        state = FileState.read(tmp_path / "missing")
        assert not state.exists
        assert state.readable

    def test_missing_parent_is_a_file(self, tmp_path: Path) -> None:
        """A path under a regular file counts as missing."""
        parent = _write(tmp_path / "f", "x", T0)
        state = FileState.read(parent / "child")
        assert not state.exists

    def test_directory_is_unreadable(self, tmp_path: Path) -> None:
        """A directory where a file is expected cannot be synced."""
        state = FileState.read(tmp_path)
        assert state.exists
        assert not state.readable
        assert state.error == "not a regular file"

    def test_no_read_permission(self, tmp_path: Path) -> None:
        """A file that cannot be opened for reading is unreadable."""
        path = _write(tmp_path / "f", "secret", T0)
        with patch("stall.sync.compare.os.access", return_value=False):
            state = FileState.read(path)

        assert state.exists
        assert not state.readable
        assert state.error == "permission denied"

    def test_unreadable_side_classifies_unreadable(
        self, comparator: MtimeComparator, tmp_path: Path
    ) -> None:
        """An unopenable remote makes the pair unreadable."""
        stall = _write(tmp_path / "s", "x", T0)
        remote = _write(tmp_path / "r", "x", T0)
        with patch("stall.sync.compare.os.access", side_effect=lambda p, m: p != remote):
            result = comparator.compare(stall, remote)

        assert result.staleness is Staleness.UNREADABLE


class TestMtimeComparator:
    """Tests for MtimeComparator classification."""

    def test_both_missing(self, comparator: MtimeComparator, tmp_path: Path) -> None:
        """Neither side present."""
        result = comparator.compare(tmp_path / "s", tmp_path / "r")
        assert result.staleness is Staleness.BOTH_MISSING

    def test_remote_missing(self, comparator: MtimeComparator, tmp_path: Path) -> None:
        """Only the stalled file present."""
        stall = _write(tmp_path / "s", "x", T0)
        result = comparator.compare(stall, tmp_path / "r")
        assert result.staleness is Staleness.REMOTE_MISSING

    def test_local_missing(self, comparator: MtimeComparator, tmp_path: Path) -> None:
        """Only the remote file present."""
        remote = _write(tmp_path / "r", "x", T0)
        result = comparator.compare(tmp_path / "s", remote)
        assert result.staleness is Staleness.LOCAL_MISSING

    def test_equal(self, comparator: MtimeComparator, tmp_path: Path) -> None:
        """Same mtime is equal, even with different content."""
        stall = _write(tmp_path / "s", "one", T0)
        remote = _write(tmp_path / "r", "two", T0)
        result = comparator.compare(stall, remote)
        assert result.staleness is Staleness.EQUAL

    def test_stall_newer(self, comparator: MtimeComparator, tmp_path: Path) -> None:
        """A later stall mtime is stall newer."""
        stall = _write(tmp_path / "s", "x", T0 + 1)
        remote = _write(tmp_path / "r", "x", T0)
        result = comparator.compare(stall, remote)
        assert result.staleness is Staleness.STALL_NEWER

    def test_remote_newer(self, comparator: MtimeComparator, tmp_path: Path) -> None:
        """A later remote mtime is remote newer."""
        stall = _write(tmp_path / "s", "x", T0)
        remote = _write(tmp_path / "r", "x", T0 + 1_000_000_000)
        result = comparator.compare(stall, remote)
        assert result.staleness is Staleness.REMOTE_NEWER

    def test_unreadable(self, comparator: MtimeComparator, tmp_path: Path) -> None:
        """An unreadable side wins over every other classification."""
        remote = tmp_path / "r"
        remote.mkdir()
        result = comparator.compare(tmp_path / "s", remote)

        assert result.staleness is Staleness.UNREADABLE
        assert result.remote.error == "not a regular file"

    def test_comparison_keeps_states(self, comparator: MtimeComparator, tmp_path: Path) -> None:
        """Both file states are returned with the classification."""
        stall = _write(tmp_path / "s", "x", T0)
        result = comparator.compare(stall, tmp_path / "r")

        assert result.stall.path == stall
        assert result.stall.mtime_ns == T0
        assert not result.remote.exists


class TestStalenessLabels:
    """Tests for report labels."""

    @pytest.mark.parametrize(
        "staleness,label",
        [
            (Staleness.LOCAL_MISSING, "stall missing"),
            (Staleness.REMOTE_MISSING, "remote missing"),
            (Staleness.EQUAL, "equal"),
        ],
    )
    def test_labels(self, staleness: Staleness, label: str) -> None:
        """Labels name the stall side as 'stall'."""
        assert staleness.label == label
