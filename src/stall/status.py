"""Status reporting for a stall.

This module provides:
- StatusRow: classification of one record with both sides described
- build_status: classify every record without copying anything
- render_status: text table for the CLI

Status is diagnostic: a record whose metadata cannot be read is reported
as unreadable and the report continues.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePath

import click

from stall.core.types import StallRecord
from stall.store import RecordStore
from stall.sync.compare import (
    Comparison,
    FileState,
    MtimeComparator,
    Staleness,
    StalenessComparator,
)

logger = logging.getLogger(__name__)

EMPTY_STALL_MESSAGE = "No files in stall. Use the add command to place files in the stall."

STALENESS_COLORS: dict[Staleness, str] = {
    Staleness.EQUAL: "white",
    Staleness.STALL_NEWER: "green",
    Staleness.REMOTE_NEWER: "green",
    Staleness.REMOTE_MISSING: "yellow",
    Staleness.LOCAL_MISSING: "yellow",
    Staleness.BOTH_MISSING: "red",
    Staleness.UNREADABLE: "red",
}


def describe_state(state: FileState) -> str:
    """Short description of one side: its timestamp, or why there is none."""
    if not state.readable:
        return "unreadable"
    if not state.exists:
        return "missing"
    assert state.mtime_ns is not None
    try:
        return datetime.fromtimestamp(state.mtime_ns / 1e9).strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, ValueError, OSError):
        # Outside the platform time range; show the raw nanoseconds
        return f"@{state.mtime_ns}ns"


@dataclass(frozen=True)
class StatusRow:
    """Status of one record."""

    record: StallRecord
    comparison: Comparison

    @property
    def staleness(self) -> Staleness:
        return self.comparison.staleness

    @property
    def label(self) -> str:
        return self.comparison.staleness.label

    @property
    def stall_descriptor(self) -> str:
        return describe_state(self.comparison.stall)

    @property
    def remote_descriptor(self) -> str:
        return describe_state(self.comparison.remote)


def build_status(
    store: RecordStore,
    stall_dir: Path,
    comparator: StalenessComparator | None = None,
) -> list[StatusRow]:
    """Classify every record in store order. Copies nothing.

    Args:
        store: Records to report on.
        stall_dir: Root of the stall directory.
        comparator: Staleness strategy. Defaults to modification times.

    Returns:
        One StatusRow per record, empty for an empty store.
    """
    comparator = comparator or MtimeComparator()
    rows = []
    for record in store:
        comparison = comparator.compare(
            record.stall_path(stall_dir), record.resolved_remote(stall_dir)
        )
        if comparison.staleness is Staleness.UNREADABLE:
            logger.debug(f"{record.local_name}: metadata unreadable")
        rows.append(StatusRow(record=record, comparison=comparison))
    return rows


def display_remote(record: StallRecord, stall_dir: Path, short_names: bool) -> str:
    """Remote path as shown to the user."""
    remote = record.resolved_remote(stall_dir)
    if short_names:
        return PurePath(remote).name
    return str(remote)


def render_status(
    rows: list[StatusRow],
    stall_dir: Path,
    short_names: bool = False,
    color: bool = False,
) -> str:
    """Render status rows as a text table.

    An empty row list renders EMPTY_STALL_MESSAGE instead of a table.
    """
    if not rows:
        return EMPTY_STALL_MESSAGE

    def style(text: str, **kwargs: object) -> str:
        return click.style(text, **kwargs) if color else text  # type: ignore[arg-type]

    lines = [
        f"{style('Stall directory:', bold=True)} {stall_dir}",
        style(f"    {'STALL':<20}{'REMOTE':<20}{'STATE':<15}FILE", bold=True),
    ]
    for row in rows:
        label = style(f"{row.label:<15}", fg=STALENESS_COLORS[row.staleness])
        remote = display_remote(row.record, stall_dir, short_names)
        lines.append(
            f"    {row.stall_descriptor:<20}{row.remote_descriptor:<20}{label}"
            f"{row.record.local_name} -> {remote}"
        )
    return "\n".join(lines)
