"""Configuration utilities for the stall CLI.

This module provides the options shared by every command, the resolution
of the stall directory and stall file, and logging setup.
"""

from __future__ import annotations

import functools
import logging
import os
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn, TypeVar

import click

from stall.core.config import DEFAULT_STALL_FILE, RunOptions
from stall.core.types import ConfigError
from stall.serializer import ConfigFormat
from stall.store import RecordStore

F = TypeVar("F", bound=Callable[..., Any])

LOG_FORMAT = "%(levelname)s: %(message)s"


class ClickEchoHandler(logging.Handler):
    """Logging handler that writes through click.echo to stderr.

    The stream is looked up on every record, so output follows whatever
    stderr click sees at the time (including CliRunner's).
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def setup_logging(options: RunOptions) -> None:
    """Configure the stall logger for one invocation.

    WARNING by default, INFO with --verbose, ERROR with --quiet and DEBUG
    with --xtrace.
    """
    handler = ClickEchoHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    stall_logger = logging.getLogger("stall")
    # Remove any existing handlers
    for existing in stall_logger.handlers[:]:
        stall_logger.removeHandler(existing)
    stall_logger.addHandler(handler)
    stall_logger.setLevel(options.log_level)
    # Prevent propagation to root logger
    stall_logger.propagate = False


def default_color() -> bool:
    """Use colors only on a terminal, and never when NO_COLOR is set."""
    return (
        sys.stdout.isatty()
        and os.environ.get("NO_COLOR") is None
        and os.environ.get("TERM") != "dumb"
    )


@dataclass
class StallContext:
    """Everything a command needs, resolved from the command line.

    Attributes:
        options: Run options threaded into the engine.
        stall_dir: Root of the stall directory.
        stall_file: Path of the stall file.
        config_format: Format forced on the command line, or None to infer.
    """

    options: RunOptions
    stall_dir: Path
    stall_file: Path
    config_format: ConfigFormat | None = None

    def check_stall_dir(self) -> None:
        """Raise ConfigError unless the stall directory is a directory."""
        if not self.stall_dir.exists():
            raise ConfigError(f"stall directory not found: {self.stall_dir}")
        if not self.stall_dir.is_dir():
            raise ConfigError(f"stall path is not a directory: {self.stall_dir}")

    def load_store(self) -> RecordStore:
        """Load the record store.

        Raises:
            ConfigError: If the stall directory or stall file is unusable.
        """
        self.check_stall_dir()
        return RecordStore.load(self.stall_file, self.config_format)

    def save_store(self, store: RecordStore) -> None:
        """Persist the store if it was modified and this is not a dry run."""
        if store.modified and not self.options.dry_run:
            store.save(fmt=self.config_format)


def resolve_paths(stall: Path | None, use_config: Path | None) -> tuple[Path, Path]:
    """Resolve the stall directory and stall file.

    Args:
        stall: Stall directory from the command line, or None for the
            current directory.
        use_config: Stall file from the command line, or None for the
            default file in the stall directory.

    Returns:
        (stall_dir, stall_file) tuple of absolute paths.
    """
    stall_dir = (stall or Path.cwd()).expanduser().absolute()
    if use_config is not None:
        stall_file = use_config.expanduser().absolute()
    else:
        stall_file = stall_dir / DEFAULT_STALL_FILE
    return stall_dir, stall_file


def build_context(
    stall: Path | None = None,
    use_config: Path | None = None,
    config_format: str | None = None,
    dry_run: bool = False,
    force: bool = False,
    strict: bool = False,
    short_names: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    trace: bool = False,
    color: bool | None = None,
) -> StallContext:
    """Build the StallContext for a command and set up logging."""
    options = RunOptions(
        dry_run=dry_run,
        force=force,
        strict=strict,
        short_names=short_names,
        verbose=verbose,
        quiet=quiet,
        trace=trace,
        color=default_color() if color is None else color,
    )
    setup_logging(options)

    stall_dir, stall_file = resolve_paths(stall, use_config)
    return StallContext(
        options=options,
        stall_dir=stall_dir,
        stall_file=stall_file,
        config_format=ConfigFormat(config_format) if config_format else None,
    )


def common_options(f: F) -> F:
    """Add the options shared between subcommands.

    The decorated command receives a single ``env`` keyword argument holding
    the resolved StallContext instead of the individual options.
    """
    options = [
        click.option(
            "--stall",
            "-C",
            "stall",
            type=click.Path(path_type=Path),
            default=None,
            help="The stall directory. Default is the current directory.",
        ),
        click.option(
            "--use-config",
            "-u",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help="The stall file to use. Default is .stall in the stall directory.",
        ),
        click.option(
            "--config-format",
            "-c",
            type=click.Choice([fmt.value for fmt in ConfigFormat]),
            default=None,
            help="The format of the stall file. Inferred when reading if omitted.",
        ),
        click.option(
            "--dry-run", "-n", is_flag=True, help="Print copy operations instead of running them."
        ),
        click.option(
            "--force", "-f", is_flag=True, help="Force copy even if files are unmodified."
        ),
        click.option(
            "--error",
            "-e",
            "strict",
            is_flag=True,
            help="Promote file access warnings into errors.",
        ),
        click.option(
            "--short-names",
            "-s",
            is_flag=True,
            help="Shorten filenames by omitting path prefixes.",
        ),
        click.option("--verbose", "-v", is_flag=True, help="Provide more detailed messages."),
        click.option(
            "--quiet",
            "-q",
            "--silent",
            "quiet",
            is_flag=True,
            help="Silence all program output. Overrides --verbose.",
        ),
        click.option("--xtrace", "trace", is_flag=True, hidden=True),
        click.option(
            "--color/--no-color",
            default=None,
            help="Colorize output. Default is to color terminals unless NO_COLOR is set.",
        ),
    ]

    @functools.wraps(f)
    def wrapper(**kwargs: Any) -> Any:
        common = {
            name: kwargs.pop(name)
            for name in (
                "stall",
                "use_config",
                "config_format",
                "dry_run",
                "force",
                "strict",
                "short_names",
                "verbose",
                "quiet",
                "trace",
                "color",
            )
        }
        return f(env=build_context(**common), **kwargs)

    for option in reversed(options):
        wrapper = option(wrapper)
    return wrapper  # type: ignore[return-value]


def fail(error: Exception | str) -> NoReturn:
    """Report a fatal error and exit with status 1."""
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)
