"""Status command for the stall CLI."""

from __future__ import annotations

import click

from stall.cli.config import StallContext, common_options, fail
from stall.core.types import StallError
from stall.status import build_status, render_status


@click.command()
@common_options
def status(env: StallContext) -> None:
    """Show the state of every stalled file.

    Nothing is copied. Files whose metadata cannot be read are reported as
    unreadable.
    """
    try:
        store = env.load_store()
    except StallError as e:
        fail(e)

    if env.options.quiet:
        return

    rows = build_status(store, env.stall_dir)
    click.echo(
        render_status(
            rows,
            env.stall_dir,
            short_names=env.options.short_names,
            color=env.options.color,
        )
    )
