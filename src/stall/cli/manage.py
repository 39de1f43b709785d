"""Stall management commands for the stall CLI.

Commands:
- init: Create an empty stall file
- add: Copy files into the stall and track them
- rm: Stop tracking files
- mv: Rename a stalled file
"""

from __future__ import annotations

from pathlib import Path

import click

from stall import commands
from stall.cli.config import StallContext, common_options, fail
from stall.core.types import StallError
from stall.serializer import ConfigFormat
from stall.store import RecordStore


@click.command()
@click.argument(
    "directory", required=False, type=click.Path(file_okay=False, path_type=Path)
)
@common_options
def init(env: StallContext, directory: Path | None) -> None:
    """Initialize a stall directory.

    Creates an empty stall file in DIRECTORY (default: the stall directory).
    Fails if a stall file already exists.
    """
    stall_file = env.stall_file
    if directory is not None and stall_file == env.stall_dir / stall_file.name:
        stall_file = directory.expanduser().absolute() / stall_file.name

    try:
        commands.init_stall(
            stall_file,
            fmt=env.config_format or ConfigFormat.STRUCTURED,
            dry_run=env.options.dry_run,
        )
    except StallError as e:
        fail(e)

    if not env.options.quiet:
        prefix = "[dry-run] Would create" if env.options.dry_run else "Created"
        click.echo(f"{prefix} new stall file at {stall_file}")


@click.command()
@click.argument("sources", nargs=-1, required=True, type=click.Path(path_type=Path))
@click.option("--rename", "-r", default=None, help="Name of the file inside the stall.")
@click.option("--into", "-i", default=None, help="Stall subdirectory to place files in.")
@common_options
def add(
    env: StallContext,
    sources: tuple[Path, ...],
    rename: str | None,
    into: str | None,
) -> None:
    """Add files to the stall.

    Each SOURCE is copied into the stall directory and tracked. The stalled
    file is named after the source unless --rename is given.
    """
    if rename is not None and len(sources) > 1:
        raise click.UsageError("--rename can only be used with a single source.")

    try:
        store = env.load_store()
    except StallError as e:
        fail(e)

    try:
        for source in sources:
            record = commands.add(
                store,
                env.stall_dir,
                source,
                local_name=rename,
                into=into,
                force=env.options.force,
                dry_run=env.options.dry_run,
            )
            if not env.options.quiet:
                prefix = "[dry-run] Would add" if env.options.dry_run else "Added"
                click.echo(f"{prefix} {record.remote_path} as {record.local_name}")
    except StallError as e:
        _save_partial(env, store)
        fail(e)

    _save(env, store)


@click.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--delete", "delete_file", is_flag=True, help="Also delete the stalled files.")
@click.option(
    "--remote",
    "by_remote",
    is_flag=True,
    help="Look entries up by remote path instead of stall name.",
)
@common_options
def rm(env: StallContext, names: tuple[str, ...], delete_file: bool, by_remote: bool) -> None:
    """Remove files from the stall.

    The stalled files are kept on disk unless --delete is given.
    """
    try:
        store = env.load_store()
    except StallError as e:
        fail(e)

    try:
        for name in names:
            record = commands.remove(
                store,
                env.stall_dir,
                name,
                delete_file=delete_file,
                by_remote=by_remote,
                dry_run=env.options.dry_run,
            )
            if not env.options.quiet:
                prefix = "[dry-run] Would remove" if env.options.dry_run else "Removed"
                click.echo(f"{prefix} {record.local_name}")
    except StallError as e:
        _save_partial(env, store)
        fail(e)

    _save(env, store)


@click.command()
@click.argument("old")
@click.argument("new")
@common_options
def mv(env: StallContext, old: str, new: str) -> None:
    """Rename a file within the stall.

    Renames both the stalled file and its entry. Use --force to replace an
    untracked file already at the new location.
    """
    try:
        store = env.load_store()
        record = commands.move(
            store,
            env.stall_dir,
            old,
            new,
            force=env.options.force,
            dry_run=env.options.dry_run,
        )
    except StallError as e:
        fail(e)

    if not env.options.quiet:
        prefix = "[dry-run] Would move" if env.options.dry_run else "Moved"
        click.echo(f"{prefix} {old} -> {record.local_name}")
    _save(env, store)


def _save(env: StallContext, store: RecordStore) -> None:
    try:
        env.save_store(store)
    except StallError as e:
        fail(e)


def _save_partial(env: StallContext, store: RecordStore) -> None:
    """Persist entries added before a failure so the stall stays consistent."""
    try:
        env.save_store(store)
    except StallError as e:
        click.echo(f"Error: {e}", err=True)
