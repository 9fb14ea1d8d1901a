"""CLI for running rate synchronization and historical backfill."""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from app.services.backfill import SyncReport, run_backfill, run_sync_cycle


def _echo_report(report: SyncReport) -> None:
    click.echo(
        f"Status: {report.status} | latest: {report.latest_date or '-'} | "
        f"gaps: {report.gaps_found} | filled: {report.filled} | "
        f"failed: {len(report.failed)} | feed-absent: {len(report.absent)}"
    )
    if report.error:
        click.echo(f"Error: {report.error}", err=True)


@click.command("sync-rates")
@with_appcontext
def sync_rates() -> None:
    """Run a single gap-detection cycle against the configured feed."""

    click.echo("Starting sync cycle...")
    report = run_sync_cycle()
    _echo_report(report)
    if report.status in {"skipped", "busy"}:
        raise click.exceptions.Exit(1)


@click.command("backfill-rates")
@with_appcontext
def backfill_rates() -> None:
    """Download the full feed history and store every missing date."""

    click.echo("Starting full historical backfill...")
    report = run_backfill()
    _echo_report(report)
    if report.status == "busy":
        raise click.exceptions.Exit(1)
    click.echo("Backfill completed.")
