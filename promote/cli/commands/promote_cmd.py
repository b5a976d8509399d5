"""Promotion commands - run, plan, invalidate."""

from __future__ import annotations

from pathlib import Path

import typer

from promote.cli.commands._helpers import exit_on_error, release_date
from promote.cli.context import CLIContext, build_context
from promote.output.console import Style
from promote.services.pipeline import (
    PipelineOutcome,
    PromotionPipeline,
    invalidate_release,
    lock_work_dir,
)

_WORK = typer.Argument(..., help="Work directory (source mirror, staging, lock)")
_CHANNEL = typer.Argument(..., help="Channel: nightly|beta|stable")
_SECRETS = typer.Argument(..., help="TOML file with [dist] settings and credentials")


def _pipeline(ctx: CLIContext, *, date: str, plan_only: bool) -> PromotionPipeline:
    return PromotionPipeline(
        config=ctx.config,
        channel=ctx.channel,
        paths=ctx.paths,
        date=date,
        console=ctx.console,
        source=ctx.source,
        storage=ctx.storage,
        build_tool=ctx.build_tool,
        invalidator=ctx.invalidator,
        http=ctx.http,
        plan_only=plan_only,
    )


def _print_outcome(ctx: CLIContext, outcome: PipelineOutcome) -> None:
    ctx.console.print(f"steps: {' -> '.join(outcome.history)}", Style.DIM)
    decision = outcome.decision
    if outcome.report is not None:
        ctx.console.success(f"{ctx.channel} released ({decision.reason if decision else ''})")
        ctx.console.print(f"archive: {outcome.report.archive_url}", Style.DIM)
    elif decision is not None and decision.should_release:
        ctx.console.info(f"{ctx.channel} would be released: {decision.reason}")
    elif decision is not None:
        ctx.console.info(f"{ctx.channel} is up to date: {decision.reason}")


def run(
    work: Path = _WORK,
    channel: str = _CHANNEL,
    secrets: Path = _SECRETS,
    date: str | None = typer.Option(
        None, "--date", help="Archive date (YYYY-MM-DD, default today UTC)", show_default=False
    ),
) -> None:
    """Promote the channel's latest CI build if it is a new release."""
    archive_date = release_date(date)
    ctx = build_context(work, channel, secrets)
    outcome = exit_on_error(_pipeline(ctx, date=archive_date, plan_only=False).run(), ctx.console)
    _print_outcome(ctx, outcome)


def plan(
    work: Path = _WORK,
    channel: str = _CHANNEL,
    secrets: Path = _SECRETS,
) -> None:
    """Decide whether the channel needs a release, without signing or publishing."""
    ctx = build_context(work, channel, secrets)
    outcome = exit_on_error(
        _pipeline(ctx, date=release_date(None), plan_only=True).run(), ctx.console
    )
    _print_outcome(ctx, outcome)


def invalidate(
    work: Path = _WORK,
    channel: str = _CHANNEL,
    secrets: Path = _SECRETS,
    docs: list[str] = typer.Option(
        [], "--docs", help="Extra docs directory to invalidate (e.g. a stable version)"
    ),
) -> None:
    """Invalidate CDN caches for an already published release."""
    ctx = build_context(work, channel, secrets)

    with exit_on_error(lock_work_dir(ctx.paths.root), ctx.console):
        dirs = (ctx.channel, *docs)
        exit_on_error(invalidate_release(ctx.invalidator, dirs), ctx.console)
    ctx.console.success(f"invalidated index and docs: {', '.join(dirs)}")
