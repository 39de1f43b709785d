"""Decision matrix for collect and distribute.

Given the staleness of a record and the requested direction, this module
decides whether the record is copied, skipped, or reported as an error.

Matrix:
| Staleness      | collect              | distribute           |
|----------------|----------------------|----------------------|
| REMOTE_MISSING | Error                | Copy                 |
| LOCAL_MISSING  | Copy                 | Error                |
| EQUAL          | Skip (copy if force) | Skip (copy if force) |
| STALL_NEWER    | Skip (copy if force) | Copy                 |
| REMOTE_NEWER   | Copy                 | Skip (copy if force) |
| BOTH_MISSING   | Error                | Error                |
| UNREADABLE     | Error                | Error                |
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from stall.core.types import Direction
from stall.sync.compare import Staleness


class SyncAction(Enum):
    """Action to take for one record."""

    COPY = auto()
    SKIP = auto()
    ERROR = auto()


@dataclass(frozen=True)
class DecisionRule:
    """A rule in the decision matrix."""

    staleness: Staleness
    direction: Direction
    action: SyncAction
    forced_action: SyncAction
    reason: str


@dataclass(frozen=True)
class Decision:
    """Outcome of evaluating the matrix for one record."""

    action: SyncAction
    reason: str
    forced: bool = False  # Copy only happens because force was set


def _rule(
    staleness: Staleness,
    direction: Direction,
    action: SyncAction,
    reason: str,
    forced_action: SyncAction | None = None,
) -> DecisionRule:
    return DecisionRule(
        staleness=staleness,
        direction=direction,
        action=action,
        forced_action=forced_action or action,
        reason=reason,
    )


COLLECT = Direction.COLLECT
DISTRIBUTE = Direction.DISTRIBUTE
COPY = SyncAction.COPY
SKIP = SyncAction.SKIP
ERROR = SyncAction.ERROR

# Declarative decision rules
DECISION_RULES: list[DecisionRule] = [
    _rule(Staleness.REMOTE_MISSING, COLLECT, ERROR, "remote file is missing"),
    _rule(Staleness.REMOTE_MISSING, DISTRIBUTE, COPY, "remote file is missing"),
    _rule(Staleness.LOCAL_MISSING, COLLECT, COPY, "stalled file is missing"),
    _rule(Staleness.LOCAL_MISSING, DISTRIBUTE, ERROR, "stalled file is missing"),
    _rule(Staleness.EQUAL, COLLECT, SKIP, "files are current", COPY),
    _rule(Staleness.EQUAL, DISTRIBUTE, SKIP, "files are current", COPY),
    _rule(Staleness.STALL_NEWER, COLLECT, SKIP, "stalled file is newer", COPY),
    _rule(Staleness.STALL_NEWER, DISTRIBUTE, COPY, "stalled file is newer"),
    _rule(Staleness.REMOTE_NEWER, COLLECT, COPY, "remote file is newer"),
    _rule(Staleness.REMOTE_NEWER, DISTRIBUTE, SKIP, "remote file is newer", COPY),
    _rule(Staleness.BOTH_MISSING, COLLECT, ERROR, "both files are missing"),
    _rule(Staleness.BOTH_MISSING, DISTRIBUTE, ERROR, "both files are missing"),
    _rule(Staleness.UNREADABLE, COLLECT, ERROR, "file metadata is unreadable"),
    _rule(Staleness.UNREADABLE, DISTRIBUTE, ERROR, "file metadata is unreadable"),
]


class DecisionMatrix:
    """Evaluates decision rules for a record."""

    def __init__(self, rules: list[DecisionRule] | None = None) -> None:
        self._rules = {
            (rule.staleness, rule.direction): rule for rule in (rules or DECISION_RULES)
        }

    def evaluate(self, staleness: Staleness, direction: Direction, force: bool) -> Decision:
        """Evaluate rules and return the decision.

        Args:
            staleness: Classification of the record.
            direction: Requested copy direction.
            force: Whether the staleness check is overridden.

        Returns:
            The decision for the record.
        """
        rule = self._rules.get((staleness, direction))
        if rule is None:
            return Decision(ERROR, f"no rule for {staleness.label} on {direction.value}")

        if force and rule.forced_action is not rule.action:
            return Decision(rule.forced_action, rule.reason, forced=True)
        return Decision(rule.action, rule.reason)


_DEFAULT_MATRIX = DecisionMatrix()


def decide(staleness: Staleness, direction: Direction, force: bool = False) -> Decision:
    """Quick decision lookup against the default rules."""
    return _DEFAULT_MATRIX.evaluate(staleness, direction, force)
