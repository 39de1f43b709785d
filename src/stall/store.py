"""Record store for tracked files.

This module provides:
- RecordStore: ordered set of StallRecords keyed by local name

The store is purely in-memory. Reading and writing the stall file are
explicit calls (load, save, create_new); mutations only set the modified
flag so the caller knows a save is due.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from collections.abc import Iterable, Iterator
from pathlib import Path

from stall.core.config import DEFAULT_STALL_FILE
from stall.core.types import (
    ConfigError,
    DuplicateNameError,
    InvalidNameError,
    NotFoundError,
    StallRecord,
    normalize_local_name,
)
from stall.serializer import ConfigFormat, parse, parse_any, serialize

logger = logging.getLogger(__name__)


class RecordStore:
    """Ordered collection of tracked files.

    Invariant: local names are unique. Every mutation validates before it
    changes anything, so a failed call leaves the store untouched.
    """

    def __init__(
        self,
        records: Iterable[StallRecord] = (),
        *,
        load_path: Path | None = None,
        config_format: ConfigFormat = ConfigFormat.STRUCTURED,
    ) -> None:
        self._records: dict[str, StallRecord] = {}
        for record in records:
            if record.local_name in self._records:
                raise DuplicateNameError(record.local_name)
            self._records[record.local_name] = record
        self.load_path = load_path
        self.config_format = config_format
        self.modified = False

    # === Persistence ===

    @classmethod
    def load(cls, path: Path, fmt: ConfigFormat | None = None) -> RecordStore:
        """Read a store from a stall file.

        Args:
            path: Path to the stall file.
            fmt: Format to parse, or None to infer it.

        Raises:
            ConfigError: If the file is missing, unreadable or unparsable.
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except FileNotFoundError as e:
            raise ConfigError(
                f"stall file not found: {path}. Use the init command to create one."
            ) from e
        except OSError as e:
            raise ConfigError(f"cannot read stall file {path}: {e.strerror or e}") from e

        if fmt is None:
            records, fmt = parse_any(data)
        else:
            records = parse(data, fmt)

        logger.debug(f"Loaded {len(records)} entries from {path} ({fmt.value} format)")
        return cls(records, load_path=path, config_format=fmt)

    def save(self, path: Path | None = None, fmt: ConfigFormat | None = None) -> Path:
        """Write the store to a stall file, replacing it atomically.

        Args:
            path: Target path. Defaults to the load path.
            fmt: Target format. Defaults to the load format.

        Returns:
            The path written.

        Raises:
            ConfigError: If no path is known or the write fails.
        """
        target = Path(path) if path is not None else self.load_path
        if target is None:
            raise ConfigError("no stall file path to save to")
        fmt = fmt or self.config_format

        data = serialize(self.records(), fmt)
        _atomic_write(target, data)

        logger.debug(f"Saved {len(self)} entries to {target} ({fmt.value} format)")
        self.load_path = target
        self.config_format = fmt
        self.modified = False
        return target

    def create_new(self, path: Path, fmt: ConfigFormat | None = None) -> Path:
        """Write the store to a stall file that must not exist yet.

        Raises:
            ConfigError: If the file already exists or cannot be created.
        """
        path = Path(path)
        fmt = fmt or self.config_format
        data = serialize(self.records(), fmt)
        try:
            with open(path, "xb") as f:
                f.write(data)
        except FileExistsError as e:
            raise ConfigError(f"stall file already exists at {path}") from e
        except OSError as e:
            raise ConfigError(f"cannot create stall file {path}: {e.strerror or e}") from e

        self.load_path = path
        self.config_format = fmt
        self.modified = False
        return path

    # === Lookup ===

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[StallRecord]:
        return iter(list(self._records.values()))

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return _key(name) in self._records

    def is_empty(self) -> bool:
        """Return True if no file is tracked."""
        return not self._records

    def records(self) -> list[StallRecord]:
        """Return all records in insertion order."""
        return list(self._records.values())

    def get(self, name: str) -> StallRecord | None:
        """Get a record by local name."""
        return self._records.get(_key(name))

    def find_remote(self, remote: str | Path, stall_dir: Path) -> StallRecord | None:
        """Get the first record whose resolved remote path matches.

        Args:
            remote: Remote path to look for. Relative paths are taken
                relative to the current directory.
            stall_dir: Stall directory used to resolve relative remotes.
        """
        wanted = _canonical(Path(remote).expanduser().absolute())
        for record in self._records.values():
            if _canonical(record.resolved_remote(stall_dir)) == wanted:
                return record
        return None

    def stall_file(self, stall_dir: Path) -> Path:
        """The stall file: the load path, or the default file in stall_dir."""
        return self.load_path if self.load_path is not None else stall_dir / DEFAULT_STALL_FILE

    def check_paths(self, record: StallRecord, stall_dir: Path) -> None:
        """Reject a record with either side on the stall file itself.

        Raises:
            InvalidNameError: If the stalled file or the remote is the stall file.
        """
        stall_file = _real(self.stall_file(stall_dir))
        if _real(record.stall_path(stall_dir)) == stall_file:
            raise InvalidNameError(f"stall name is the stall file: {record.local_name}")
        if _real(record.resolved_remote(stall_dir)) == stall_file:
            raise InvalidNameError(f"remote path is the stall file: {record.remote_path}")

    def select(self, names: Iterable[str]) -> list[StallRecord]:
        """Resolve local names to records, or return all records if empty.

        Raises:
            NotFoundError: If any name is not tracked. Raised before the
                caller gets any record back.
        """
        names = list(names)
        if not names:
            return self.records()

        selected = []
        for name in names:
            record = self.get(name)
            if record is None:
                raise NotFoundError(name)
            selected.append(record)
        return selected

    # === Mutations ===

    def insert(self, name: str, remote: str | Path) -> StallRecord:
        """Add a record.

        Raises:
            DuplicateNameError: If the local name is taken.
            InvalidNameError: If the local name is not a valid stall name.
        """
        local_name = normalize_local_name(name)
        if local_name in self._records:
            raise DuplicateNameError(local_name)

        record = StallRecord(local_name=local_name, remote_path=Path(remote))
        self._records[local_name] = record
        self.modified = True
        return record

    def remove(self, name: str) -> bool:
        """Remove a record. Returns True if a record was removed."""
        removed = self._records.pop(_key(name), None)
        if removed is None:
            return False
        self.modified = True
        return True

    def rename(self, old: str, new: str) -> StallRecord:
        """Change a record's local name, keeping its position.

        Raises:
            NotFoundError: If old is not tracked.
            DuplicateNameError: If new is taken by another record.
        """
        old_key = _key(old)
        record = self._records.get(old_key)
        if record is None:
            raise NotFoundError(old)
        new_key = normalize_local_name(new)
        if new_key == old_key:
            return record
        if new_key in self._records:
            raise DuplicateNameError(new_key)

        renamed = StallRecord(local_name=new_key, remote_path=record.remote_path)
        self._records = {
            (new_key if key == old_key else key): (renamed if key == old_key else value)
            for key, value in self._records.items()
        }
        self.modified = True
        return renamed


def _key(name: str) -> str:
    """Lookup key for a name; invalid names never match anything."""
    try:
        return normalize_local_name(name)
    except InvalidNameError:
        return name


def _canonical(path: Path) -> Path:
    return Path(os.path.normpath(path))


def _real(path: Path) -> Path:
    return Path(os.path.realpath(path))


def _atomic_write(path: Path, data: bytes) -> None:
    """Write data to path through a temp file in the same directory."""
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    except OSError as e:
        raise ConfigError(f"cannot write stall file {path}: {e.strerror or e}") from e

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise ConfigError(f"cannot write stall file {path}: {e.strerror or e}") from e
