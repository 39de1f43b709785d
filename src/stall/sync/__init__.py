"""Sync package - staleness comparison, decisions and copies.

This package provides:
- compare: Staleness classification strategy (modification times)
- decisions: Decision matrix for collect and distribute
- copy: Atomic file copy
- engine: SyncEngine running collect and distribute over a RecordStore
"""

from stall.sync.compare import (
    Comparison,
    FileState,
    MtimeComparator,
    Staleness,
    StalenessComparator,
)
from stall.sync.copy import copy_file
from stall.sync.decisions import (
    DECISION_RULES,
    Decision,
    DecisionMatrix,
    DecisionRule,
    SyncAction,
    decide,
)
from stall.sync.engine import (
    RecordOutcome,
    SyncEngine,
    SyncError,
    SyncResult,
)

__all__ = [
    # compare
    "Comparison",
    "FileState",
    "MtimeComparator",
    "Staleness",
    "StalenessComparator",
    # copy
    "copy_file",
    # decisions
    "DECISION_RULES",
    "Decision",
    "DecisionMatrix",
    "DecisionRule",
    "SyncAction",
    "decide",
    # engine
    "RecordOutcome",
    "SyncEngine",
    "SyncError",
    "SyncResult",
]
