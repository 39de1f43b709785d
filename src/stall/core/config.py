"""Run options shared by every stall command.

The CLI builds one RunOptions per invocation and passes it explicitly to the
engine entry points, so the engine never reads global state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

DEFAULT_STALL_FILE = ".stall"


@dataclass(frozen=True)
class RunOptions:
    """Options shared between subcommands.

    Attributes:
        dry_run: Compute and report every action, write nothing.
        force: Copy even when the target is current.
        strict: Abort on the first per-record error instead of warning.
        short_names: Display only the final component of remote paths.
        verbose: Report informational messages.
        quiet: Silence everything but errors. Overrides verbose.
        trace: Report debug messages. Overrides quiet.
        color: Use ANSI colors in rendered tables.
    """

    dry_run: bool = False
    force: bool = False
    strict: bool = False
    short_names: bool = False
    verbose: bool = False
    quiet: bool = False
    trace: bool = False
    color: bool = False

    @property
    def log_level(self) -> int:
        """Logging level implied by the verbosity flags."""
        if self.trace:
            return logging.DEBUG
        if self.quiet:
            return logging.ERROR
        if self.verbose:
            return logging.INFO
        return logging.WARNING
