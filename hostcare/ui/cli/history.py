"""
CLI command for past service-management runs, read from the run ledger.

Usage::

    hostcare history
    hostcare history -n 5
    hostcare history --all --json
"""

from __future__ import annotations

import json
import sys

import click


@click.command()
@click.option("-n", "--limit", default=20, show_default=True, type=click.IntRange(min=1),
              help="Number of most recent runs to show.")
@click.option("--all", "show_all", is_flag=True, help="Show every recorded run.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, limit: int, show_all: bool, as_json: bool) -> None:
    """Show recent runs recorded in the data directory."""
    from hostcare.core.config.loader import ConfigError, load_config
    from hostcare.core.persistence.ledger import RunLedger

    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if config.data_directory is None:
        click.secho("❌ system.data_directory is not set; no runs are recorded", fg="red", err=True)
        sys.exit(1)

    ledger = RunLedger(data_directory=config.data_directory)
    entries = ledger.read_all() if show_all else ledger.read_recent(limit)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.echo(f"No runs recorded in {ledger.path}")
        return

    click.secho(f"\n📜 Run history ({len(entries)} runs)", fg="cyan", bold=True)
    click.echo()
    for entry in entries:
        color = "red" if entry.unresolved or entry.error else "green"
        click.secho(f"   {entry.timestamp[:19]}  {entry.mode:<12}", nl=False)
        click.secho(
            f"running {entry.running}/{entry.services_total}",
            fg=color,
            nl=False,
        )
        if entry.recovered:
            click.echo(f"  recovered: {', '.join(entry.recovered)}", nl=False)
        if entry.unresolved:
            click.secho(f"  unresolved: {', '.join(entry.unresolved)}", fg="red", nl=False)
        if entry.error:
            click.secho(f"  {entry.error}", fg="magenta", nl=False)
        click.echo()
    click.echo()
