"""Staleness comparison strategy.

This module classifies the relative freshness of a stalled file and its
remote counterpart. The comparator is a strategy so that another comparison
key can replace modification times without touching the sync engine.
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol


class Staleness(Enum):
    """Relative freshness of the two sides of a record."""

    BOTH_MISSING = "both missing"
    REMOTE_MISSING = "remote missing"
    LOCAL_MISSING = "stall missing"
    EQUAL = "equal"
    STALL_NEWER = "stall newer"
    REMOTE_NEWER = "remote newer"
    UNREADABLE = "unreadable"

    @property
    def label(self) -> str:
        """Human-readable label for reports."""
        return self.value


@dataclass(frozen=True)
class FileState:
    """Metadata snapshot of one side of a record.

    Attributes:
        path: Absolute path that was inspected.
        exists: Whether a file was found.
        mtime_ns: Modification time in nanoseconds, if readable.
        size: File size in bytes, if readable.
        error: Why the metadata could not be read, if it could not.
    """

    path: Path
    exists: bool
    mtime_ns: int | None = None
    size: int | None = None
    error: str | None = None

    @property
    def readable(self) -> bool:
        return self.error is None

    @classmethod
    def read(cls, path: Path) -> FileState:
        """Stat a path without raising."""
        try:
            st = path.stat()
        except (FileNotFoundError, NotADirectoryError):
            return cls(path=path, exists=False)
        except OSError as e:
            return cls(path=path, exists=True, error=e.strerror or str(e))

        if not stat.S_ISREG(st.st_mode):
            return cls(path=path, exists=True, error="not a regular file")
        if not os.access(path, os.R_OK):
            return cls(path=path, exists=True, error="permission denied")
        return cls(path=path, exists=True, mtime_ns=st.st_mtime_ns, size=st.st_size)


@dataclass(frozen=True)
class Comparison:
    """Result of comparing the two sides of a record."""

    staleness: Staleness
    stall: FileState
    remote: FileState


class StalenessComparator(Protocol):
    """Protocol for classifying a stall/remote pair."""

    def compare(self, stall_path: Path, remote_path: Path) -> Comparison:
        """Classify the pair. Never raises for per-file I/O failures."""
        ...


class MtimeComparator:
    """Compares files by modification time only.

    Equal timestamps (bit-equal nanoseconds) classify as EQUAL; file
    content is never read.
    """

    def compare(self, stall_path: Path, remote_path: Path) -> Comparison:
        stall_state = FileState.read(stall_path)
        remote_state = FileState.read(remote_path)
        return Comparison(
            staleness=self._classify(stall_state, remote_state),
            stall=stall_state,
            remote=remote_state,
        )

    def _classify(self, stall_state: FileState, remote_state: FileState) -> Staleness:
        if not stall_state.readable or not remote_state.readable:
            return Staleness.UNREADABLE
        if not stall_state.exists and not remote_state.exists:
            return Staleness.BOTH_MISSING
        if not remote_state.exists:
            return Staleness.REMOTE_MISSING
        if not stall_state.exists:
            return Staleness.LOCAL_MISSING

        # Type guard: both sides exist and are readable
        assert stall_state.mtime_ns is not None and remote_state.mtime_ns is not None
        if stall_state.mtime_ns == remote_state.mtime_ns:
            return Staleness.EQUAL
        if stall_state.mtime_ns > remote_state.mtime_ns:
            return Staleness.STALL_NEWER
        return Staleness.REMOTE_NEWER
