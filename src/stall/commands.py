"""Structural edits of a stall: init, add, rm and mv.

Each operation validates everything it can before touching the filesystem
or the store, and leaves the caller to persist the store afterwards
(RecordStore.modified tells whether that is needed).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from stall.core.types import (
    ConfigError,
    DuplicateNameError,
    FileAccessError,
    NotFoundError,
    Side,
    StallError,
    StallRecord,
    normalize_local_name,
)
from stall.serializer import ConfigFormat
from stall.store import RecordStore
from stall.sync.compare import FileState
from stall.sync.copy import copy_file

logger = logging.getLogger(__name__)


def init_stall(
    stall_file: Path,
    fmt: ConfigFormat = ConfigFormat.STRUCTURED,
    dry_run: bool = False,
) -> RecordStore:
    """Create an empty stall file.

    The stall directory is created if it does not exist.

    Args:
        stall_file: Path of the stall file to create.
        fmt: Format to write.
        dry_run: Check and report only.

    Returns:
        The new, empty store.

    Raises:
        ConfigError: If a stall file already exists or cannot be created.
    """
    stall_file = Path(stall_file)
    store = RecordStore(config_format=fmt)

    if stall_file.exists():
        raise ConfigError(f"stall file already exists at {stall_file}")
    if dry_run:
        logger.info(f"[dry-run] Would create stall file at {stall_file}")
        store.load_path = stall_file
        return store

    try:
        stall_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(
            f"cannot create stall directory {stall_file.parent}: {e.strerror or e}"
        ) from e
    store.create_new(stall_file, fmt)
    logger.info(f"Created stall file at {stall_file}")
    return store


def add(
    store: RecordStore,
    stall_dir: Path,
    source: str | Path,
    local_name: str | None = None,
    into: str | None = None,
    force: bool = False,
    dry_run: bool = False,
) -> StallRecord:
    """Copy a file into the stall and track it.

    After a successful add both sides have the same content and modification
    time, so the record classifies as EQUAL.

    Args:
        store: Store to insert into.
        stall_dir: Root of the stall directory.
        source: File to track. Becomes the record's remote path.
        local_name: Name inside the stall. Defaults to the source's base name.
        into: Optional stall subdirectory to place the file in.
        force: Overwrite an untracked file already at the stall location.
        dry_run: Validate and report only.

    Returns:
        The new record.

    Raises:
        DuplicateNameError: If the local name is already tracked.
        InvalidNameError: If the local name is not a valid stall name, or either
            side of the record would be the stall file.
        FileAccessError: If the source cannot be read or the stall written.
    """
    source_path = Path(source).expanduser().absolute()
    if local_name is None:
        name = StallRecord.from_remote(source_path).local_name
    else:
        name = normalize_local_name(local_name)
    if into:
        name = normalize_local_name(f"{normalize_local_name(into)}/{name}")

    if name in store:
        raise DuplicateNameError(name)
    record = StallRecord(local_name=name, remote_path=source_path)
    store.check_paths(record, stall_dir)

    state = FileState.read(source_path)
    if not state.exists:
        raise FileAccessError(source_path, Side.REMOTE, "read", "No such file or directory")
    if not state.readable:
        raise FileAccessError(source_path, Side.REMOTE, "read", state.error or "unknown error")

    target = record.stall_path(stall_dir)
    if target.exists() and not force:
        raise FileAccessError(
            target, Side.STALL, "write", "file already exists (use --force to overwrite)"
        )

    if dry_run:
        logger.info(f"[dry-run] Would add {source_path} as {name}")
        return record

    copy_file(source_path, target, Side.REMOTE, Side.STALL)
    record = store.insert(name, source_path)
    logger.info(f"Added {source_path} as {name}")
    return record


def remove(
    store: RecordStore,
    stall_dir: Path,
    name: str,
    delete_file: bool = False,
    by_remote: bool = False,
    dry_run: bool = False,
) -> StallRecord:
    """Stop tracking a file.

    Args:
        store: Store to remove from.
        stall_dir: Root of the stall directory.
        name: Local name of the record, or its remote path if by_remote.
        delete_file: Also delete the stalled file.
        by_remote: Look the record up by remote path.
        dry_run: Validate and report only.

    Returns:
        The removed record.

    Raises:
        NotFoundError: If no record matches.
        FileAccessError: If the stalled file cannot be deleted. The record
            is kept in that case.
    """
    record = store.find_remote(name, stall_dir) if by_remote else store.get(name)
    if record is None:
        raise NotFoundError(name)

    if dry_run:
        logger.info(f"[dry-run] Would remove {record.local_name}")
        return record

    if delete_file:
        path = record.stall_path(stall_dir)
        try:
            path.unlink()
            logger.info(f"Deleted {path}")
        except FileNotFoundError:
            logger.warning(f"Stalled file already absent: {path}")
        except OSError as e:
            raise FileAccessError(path, Side.STALL, "delete", e.strerror or str(e)) from e

    store.remove(record.local_name)
    logger.info(f"Removed {record.local_name}")
    return record


def move(
    store: RecordStore,
    stall_dir: Path,
    old: str,
    new: str,
    force: bool = False,
    dry_run: bool = False,
) -> StallRecord:
    """Rename a stalled file and its record as one operation.

    If the file rename fails the record is not changed; if the record
    rename fails the file is moved back.

    Args:
        store: Store holding the record.
        stall_dir: Root of the stall directory.
        old: Current local name.
        new: New local name.
        force: Replace an untracked file already at the new location.
        dry_run: Validate and report only.

    Returns:
        The renamed record.

    Raises:
        NotFoundError: If old is not tracked.
        DuplicateNameError: If new is already tracked.
        InvalidNameError: If new is not a valid name or is the stall file.
        FileAccessError: If the file cannot be renamed.
    """
    record = store.get(old)
    if record is None:
        raise NotFoundError(old)
    new_name = normalize_local_name(new)
    if new_name == record.local_name:
        return record
    if new_name in store:
        raise DuplicateNameError(new_name)

    renamed = StallRecord(local_name=new_name, remote_path=record.remote_path)
    store.check_paths(renamed, stall_dir)
    old_path = record.stall_path(stall_dir)
    new_path = renamed.stall_path(stall_dir)
    if new_path.exists() and not force:
        raise FileAccessError(
            new_path, Side.STALL, "rename", "file already exists (use --force to overwrite)"
        )

    if dry_run:
        logger.info(f"[dry-run] Would move {record.local_name} -> {new_name}")
        return renamed

    moved = False
    if old_path.exists():
        try:
            new_path.parent.mkdir(parents=True, exist_ok=True)
            os.replace(old_path, new_path)
        except OSError as e:
            raise FileAccessError(old_path, Side.STALL, "rename", e.strerror or str(e)) from e
        moved = True
    else:
        logger.warning(f"Stalled file not present, renaming entry only: {old_path}")

    try:
        renamed = store.rename(record.local_name, new_name)
    except StallError:
        if moved:
            os.replace(new_path, old_path)
        raise

    logger.info(f"Moved {record.local_name} -> {new_name}")
    return renamed
