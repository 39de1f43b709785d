"""Sync commands for the stall CLI.

Commands:
- collect: Copy remote files into the stall
- distribute: Copy stalled files out to their remotes
"""

from __future__ import annotations

import click

from stall.cli.config import StallContext, common_options, fail
from stall.core.types import Direction, StallError
from stall.status import EMPTY_STALL_MESSAGE, STALENESS_COLORS, display_remote
from stall.sync.decisions import SyncAction
from stall.sync.engine import RecordOutcome, SyncEngine, SyncError, SyncResult

ACTION_COLORS: dict[SyncAction, str] = {
    SyncAction.COPY: "green",
    SyncAction.SKIP: "white",
    SyncAction.ERROR: "red",
}


def _run_sync(env: StallContext, direction: Direction, names: tuple[str, ...]) -> None:
    """Shared body of collect and distribute."""
    options = env.options

    try:
        store = env.load_store()
    except StallError as e:
        fail(e)

    if store.is_empty():
        if not options.quiet:
            click.echo(EMPTY_STALL_MESSAGE)
        return

    def style(text: str, **kwargs: object) -> str:
        return click.style(text, **kwargs) if options.color else text  # type: ignore[arg-type]

    def on_outcome(outcome: RecordOutcome) -> None:
        if options.quiet:
            return
        decision = outcome.decision
        action = decision.action.name.lower()
        if decision.forced:
            action = "force"
        if outcome.failed:
            action = "error"
        state = style(
            f"{outcome.comparison.staleness.label:<15}",
            fg=STALENESS_COLORS[outcome.comparison.staleness],
        )
        action_color = "red" if outcome.failed else ACTION_COLORS[decision.action]
        remote = display_remote(outcome.record, env.stall_dir, options.short_names)
        arrow = "<-" if direction is Direction.COLLECT else "->"
        click.echo(
            f"    {state}{style(f'{action:<8}', fg=action_color)}"
            f"{outcome.record.local_name} {arrow} {remote}"
        )

    if not options.quiet:
        header = f"{style('Stall directory:', bold=True)} {env.stall_dir}"
        if options.dry_run:
            header += " [dry-run]"
        click.echo(header)
        click.echo(style(f"    {'STATE':<15}{'ACTION':<8}FILE", bold=True))

    engine = SyncEngine(store, env.stall_dir, options=options, on_outcome=on_outcome)
    try:
        result = engine.run(direction, names)
    except SyncError as e:
        _echo_summary(env, e.result)
        fail(e)
    except StallError as e:
        fail(e)

    _echo_summary(env, result)


def _echo_summary(env: StallContext, result: SyncResult) -> None:
    if env.options.quiet:
        return
    verb = "would be copied" if result.dry_run else "copied"
    click.echo(
        f"\n{len(result.copied)} {verb}, {len(result.skipped)} skipped, "
        f"{len(result.failed)} failed"
    )


@click.command()
@click.argument("names", nargs=-1)
@common_options
def collect(env: StallContext, names: tuple[str, ...]) -> None:
    """Collect remote files into the stall.

    Copies each remote file whose stalled copy is older or missing. NAME
    limits the run to the given stall entries.
    """
    _run_sync(env, Direction.COLLECT, names)


@click.command()
@click.argument("names", nargs=-1)
@common_options
def distribute(env: StallContext, names: tuple[str, ...]) -> None:
    """Distribute stalled files to their remote locations.

    Copies each stalled file whose remote copy is older or missing. NAME
    limits the run to the given stall entries.
    """
    _run_sync(env, Direction.DISTRIBUTE, names)
