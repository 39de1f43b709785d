"""Command-line interface for stall.

This module provides the main CLI entry point and assembles all commands.

Commands:
- init: Create an empty stall file
- add: Copy files into the stall and track them
- rm: Stop tracking files
- mv: Rename a stalled file
- status: Show the state of every stalled file
- collect: Copy remote files into the stall
- distribute: Copy stalled files out to their remotes
"""

from __future__ import annotations

import click

from stall.cli.config import (
    StallContext,
    build_context,
    common_options,
    resolve_paths,
    setup_logging,
)
from stall.cli.manage import add, init, mv, rm
from stall.cli.status import status
from stall.cli.sync import collect, distribute


@click.group()
@click.version_option(package_name="stall")
def cli() -> None:
    """stall - keep copies of scattered files in one directory."""


# Stall management commands
cli.add_command(init)
cli.add_command(add)
cli.add_command(rm)
cli.add_command(mv)

# Reporting
cli.add_command(status)

# Sync commands
cli.add_command(collect)
cli.add_command(distribute)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "StallContext",
    "build_context",
    "common_options",
    "resolve_paths",
    "setup_logging",
]
