"""Atomic file copy between the two sides of a record.

The copy streams into a temporary file beside the destination, then renames
it over the destination. A failed copy leaves the destination untouched and
removes the temporary file.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tempfile
from pathlib import Path

from stall.core.types import FileAccessError, Side

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 1024 * 1024


def copy_file(source: Path, target: Path, source_side: Side, target_side: Side) -> int:
    """Copy source over target, preserving content and modification time.

    Missing parent directories of target are created. A symlinked target is
    written through: the file it points to is replaced and the link is kept.

    Args:
        source: File to read.
        target: File to create or replace.
        source_side: Side of the record source belongs to (for errors).
        target_side: Side of the record target belongs to (for errors).

    Returns:
        Number of bytes copied.

    Raises:
        FileAccessError: If reading source or writing target fails.
    """
    logger.debug(f"Copying {source} -> {target}")

    try:
        src = open(source, "rb")
    except OSError as e:
        raise FileAccessError(source, source_side, "read", e.strerror or str(e)) from e

    with src:
        target = _write_location(target, target_side)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
            )
        except OSError as e:
            raise FileAccessError(target, target_side, "write", e.strerror or str(e)) from e

        tmp_path = Path(tmp_name)
        try:
            copied = _stream(src, fd, source, source_side, target, target_side)
            try:
                shutil.copystat(source, tmp_path)
                os.replace(tmp_path, target)
            except OSError as e:
                raise FileAccessError(
                    target, target_side, "write", e.strerror or str(e)
                ) from e
        except Exception:
            # Clean up temp file on failure
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise

    logger.info(f"Copied {copied} bytes: {source} -> {target}")
    return copied


def _write_location(target: Path, target_side: Side) -> Path:
    """Path to replace when writing target, following symlinks."""
    if not target.is_symlink():
        return target
    try:
        resolved = target.resolve()
    except (OSError, RuntimeError) as e:
        raise FileAccessError(target, target_side, "write", str(e)) from e
    logger.debug(f"Writing through symlink {target} -> {resolved}")
    return resolved


def _stream(
    src, fd: int, source: Path, source_side: Side, target: Path, target_side: Side
) -> int:
    copied = 0
    with os.fdopen(fd, "wb") as dst:
        while True:
            try:
                buf = src.read(COPY_BUFFER_SIZE)
            except OSError as e:
                raise FileAccessError(source, source_side, "read", e.strerror or str(e)) from e
            if not buf:
                break
            try:
                dst.write(buf)
            except OSError as e:
                raise FileAccessError(target, target_side, "write", e.strerror or str(e)) from e
            copied += len(buf)
        try:
            dst.flush()
            os.fsync(dst.fileno())
        except OSError as e:
            raise FileAccessError(target, target_side, "write", e.strerror or str(e)) from e
    return copied
