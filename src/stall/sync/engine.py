"""Sync engine for collect and distribute.

For every selected record the engine classifies both sides with a
StalenessComparator, looks the classification up in the DecisionMatrix, and
copies (or, in a dry run, only reports) in the requested direction.

Per-record failures are collected as warnings, or raised immediately in
strict mode. Copies completed before a strict-mode abort are kept.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from stall.core.config import RunOptions
from stall.core.types import (
    BothMissingError,
    Direction,
    FileAccessError,
    InvalidNameError,
    NothingToCopyError,
    Side,
    StallError,
    StallRecord,
)
from stall.store import RecordStore
from stall.sync.compare import Comparison, MtimeComparator, Staleness, StalenessComparator
from stall.sync.copy import copy_file
from stall.sync.decisions import Decision, DecisionMatrix, SyncAction

logger = logging.getLogger(__name__)


@dataclass
class RecordOutcome:
    """What happened to one record during a sync run.

    Attributes:
        record: The record processed.
        comparison: Classification of both sides before any copy.
        decision: Action chosen by the decision matrix.
        copied: True if bytes were written (always False in a dry run).
        error: The per-record error, if the record failed.
    """

    record: StallRecord
    comparison: Comparison
    decision: Decision
    copied: bool = False
    error: StallError | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class SyncResult:
    """Result of a collect or distribute run."""

    direction: Direction
    dry_run: bool
    outcomes: list[RecordOutcome] = field(default_factory=list)

    @property
    def copied(self) -> list[RecordOutcome]:
        """Records that were (or in a dry run, would be) copied."""
        return [
            o for o in self.outcomes if o.decision.action is SyncAction.COPY and not o.failed
        ]

    @property
    def skipped(self) -> list[RecordOutcome]:
        return [o for o in self.outcomes if o.decision.action is SyncAction.SKIP]

    @property
    def failed(self) -> list[RecordOutcome]:
        return [o for o in self.outcomes if o.failed]

    @property
    def success(self) -> bool:
        return not self.failed


# Type alias for per-record progress callback
OutcomeCallback = Callable[[RecordOutcome], None]


class SyncError(StallError):
    """Strict-mode abort of a sync run.

    Attributes:
        result: Outcomes processed up to and including the failing record.
        outcome: The failing record's outcome.
    """

    def __init__(self, result: SyncResult, outcome: RecordOutcome) -> None:
        self.result = result
        self.outcome = outcome
        super().__init__(str(outcome.error))


class SyncEngine:
    """Runs collect and distribute over a record store."""

    def __init__(
        self,
        store: RecordStore,
        stall_dir: Path,
        options: RunOptions | None = None,
        comparator: StalenessComparator | None = None,
        matrix: DecisionMatrix | None = None,
        on_outcome: OutcomeCallback | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Records to process.
            stall_dir: Root of the stall directory.
            options: Run options (dry run, force, strict).
            comparator: Staleness strategy. Defaults to modification times.
            matrix: Decision rules. Defaults to the standard table.
            on_outcome: Optional callback invoked after each record.
        """
        self._store = store
        self._stall_dir = Path(stall_dir)
        self._options = options or RunOptions()
        self._comparator = comparator or MtimeComparator()
        self._matrix = matrix or DecisionMatrix()
        self._on_outcome = on_outcome

    def collect(self, names: Iterable[str] = ()) -> SyncResult:
        """Copy remote files into the stall where the stall side is stale."""
        return self.run(Direction.COLLECT, names)

    def distribute(self, names: Iterable[str] = ()) -> SyncResult:
        """Copy stalled files to their remotes where the remote side is stale."""
        return self.run(Direction.DISTRIBUTE, names)

    def run(self, direction: Direction, names: Iterable[str] = ()) -> SyncResult:
        """Process every selected record in store order.

        Args:
            direction: Copy direction.
            names: Local names to process. Empty means every record.

        Returns:
            SyncResult with one outcome per processed record.

        Raises:
            NotFoundError: If a name is not tracked. Nothing is copied.
            SyncError: In strict mode, on the first per-record error.
        """
        records = self._store.select(names)
        result = SyncResult(direction=direction, dry_run=self._options.dry_run)
        logger.debug(
            f"Starting {direction.value} of {len(records)} entries in {self._stall_dir}"
        )

        for record in records:
            outcome = self._process(record, direction)
            result.outcomes.append(outcome)
            if self._on_outcome:
                self._on_outcome(outcome)

            if outcome.failed:
                if self._options.strict:
                    raise SyncError(result, outcome)
                logger.warning(f"{record.local_name}: {outcome.error}")

        logger.info(
            f"{direction.value}: {len(result.copied)} copied, "
            f"{len(result.skipped)} skipped, {len(result.failed)} failed"
        )
        return result

    def _process(self, record: StallRecord, direction: Direction) -> RecordOutcome:
        stall_path = record.stall_path(self._stall_dir)
        remote_path = record.resolved_remote(self._stall_dir)
        comparison = self._comparator.compare(stall_path, remote_path)
        decision = self._matrix.evaluate(comparison.staleness, direction, self._options.force)
        logger.debug(
            f"{record.local_name}: {comparison.staleness.label} -> "
            f"{decision.action.name.lower()} ({decision.reason})"
        )

        outcome = RecordOutcome(record=record, comparison=comparison, decision=decision)

        try:
            self._store.check_paths(record, self._stall_dir)
        except InvalidNameError as e:
            outcome.decision = Decision(SyncAction.ERROR, "entry points at the stall file")
            outcome.error = e
            return outcome

        if decision.action is SyncAction.ERROR:
            outcome.error = _classification_error(comparison, direction)
            return outcome
        if decision.action is SyncAction.SKIP:
            return outcome

        if direction is Direction.COLLECT:
            source, target = remote_path, stall_path
        else:
            source, target = stall_path, remote_path

        if self._options.dry_run:
            logger.info(f"[dry-run] Would copy {source} -> {target}")
            return outcome

        try:
            copy_file(source, target, direction.source, direction.target)
            outcome.copied = True
        except FileAccessError as e:
            outcome.error = e
        return outcome


def _classification_error(comparison: Comparison, direction: Direction) -> StallError:
    """Build an actionable error for a record the matrix refuses to copy."""
    stall, remote = comparison.stall, comparison.remote

    if comparison.staleness is Staleness.BOTH_MISSING:
        return BothMissingError(stall.path, remote.path)

    if comparison.staleness is Staleness.UNREADABLE:
        side, state = (Side.STALL, stall) if not stall.readable else (Side.REMOTE, remote)
        return FileAccessError(state.path, side, "stat", state.error or "unknown error")

    source = remote if direction is Direction.COLLECT else stall
    return NothingToCopyError(source.path, direction.source)
