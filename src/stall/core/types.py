"""Shared types for stall.

This module provides:
- StallRecord: mapping of a stalled file to its remote location
- normalize_local_name: validation of stall-relative names
- Side, Direction: which half of a record an operation touches
- StallError and its subclasses: exception classes raised by the engine
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath, PureWindowsPath


def normalize_local_name(name: str | PurePosixPath) -> str:
    """Normalize a stall-relative name to POSIX form.

    Args:
        name: Name relative to the stall directory root.

    Returns:
        The name with "/" separators and no "." segments.

    Raises:
        InvalidNameError: If the name is empty, absolute, or contains "..".
    """
    raw = str(name).replace("\\", "/")
    if PurePosixPath(raw).is_absolute() or PureWindowsPath(raw).drive:
        raise InvalidNameError(f"stall name must be relative: {name}")
    parts = [part for part in PurePosixPath(raw).parts if part != "."]
    if not parts:
        raise InvalidNameError(f"invalid stall name: {name!r}")
    if ".." in parts:
        raise InvalidNameError(f"stall name must not leave the stall: {name}")
    return "/".join(parts)


@dataclass(frozen=True)
class StallRecord:
    """A tracked file.

    Attributes:
        local_name: Path relative to the stall directory, "/"-separated.
        remote_path: Location of the original file. Relative paths are
            resolved against the stall directory before use.
    """

    local_name: str
    remote_path: Path

    @classmethod
    def from_remote(cls, remote: str | Path) -> StallRecord:
        """Create a record named after the remote file's base name."""
        remote_path = Path(remote)
        if not remote_path.name:
            raise InvalidNameError(f"invalid remote file name: {remote}")
        return cls(local_name=normalize_local_name(remote_path.name), remote_path=remote_path)

    def stall_path(self, stall_dir: Path) -> Path:
        """Absolute location of the stalled file."""
        return stall_dir.joinpath(*self.local_name.split("/"))

    def resolved_remote(self, stall_dir: Path) -> Path:
        """Remote path, resolved against the stall directory if relative."""
        remote = self.remote_path.expanduser()
        if remote.is_absolute():
            return remote
        return stall_dir / remote


class Side(str, Enum):
    """One of the two locations of a tracked file."""

    STALL = "stall"
    REMOTE = "remote"


class Direction(str, Enum):
    """Copy direction of a sync run."""

    COLLECT = "collect"  # remote -> stall
    DISTRIBUTE = "distribute"  # stall -> remote

    @property
    def source(self) -> Side:
        """Side that is read from."""
        return Side.REMOTE if self is Direction.COLLECT else Side.STALL

    @property
    def target(self) -> Side:
        """Side that is written to."""
        return Side.STALL if self is Direction.COLLECT else Side.REMOTE


class StallError(Exception):
    """Base exception for stall errors."""


class ConfigError(StallError):
    """The stall file or stall directory cannot be used."""


class ParseError(ConfigError):
    """The stall file content does not match the selected format."""


class DuplicateNameError(StallError):
    """A local name is already taken by another record."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"stall entry already exists: {name}")


class NotFoundError(StallError):
    """No record matches the given name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"no stall entry found: {name}")


class InvalidNameError(StallError):
    """A local name is absolute, escapes the stall, or is empty."""


class FileAccessError(StallError):
    """An I/O operation failed on one side of a record.

    Attributes:
        path: The path the operation was applied to.
        side: Which side of the record the path belongs to.
        operation: "read", "write", "stat", "rename" or "delete".
    """

    def __init__(self, path: Path, side: Side, operation: str, reason: str) -> None:
        self.path = path
        self.side = side
        self.operation = operation
        super().__init__(f"cannot {operation} {side.value} file {path}: {reason}")


class BothMissingError(StallError):
    """Neither the stalled file nor the remote file exists."""

    def __init__(self, stall_path: Path, remote_path: Path) -> None:
        self.stall_path = stall_path
        self.remote_path = remote_path
        super().__init__(
            f"both files are missing: {stall_path} (stall), {remote_path} (remote)"
        )


class NothingToCopyError(StallError):
    """The source side of the requested direction does not exist."""

    def __init__(self, path: Path, side: Side) -> None:
        self.path = path
        self.side = side
        super().__init__(f"{side.value} file is missing, nothing to copy: {path}")
