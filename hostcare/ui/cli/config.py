"""
CLI commands for configuration — ``hostcare config check``.
"""

from __future__ import annotations

import json
import sys

import click


@click.group()
def config() -> None:
    """Inspect hostcare.yml."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, as_json: bool) -> None:
    """Validate configuration and show the effective service settings."""
    from hostcare.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    source = result.config_path or "built-in defaults"
    if result.valid:
        click.secho(f"✅ {source}: configuration is valid", fg="green", bold=True)
    else:
        click.secho(f"❌ {source}: configuration is invalid", fg="red", bold=True)

    if result.config is not None:
        settings = result.config.services
        restart = (
            f"up to {settings.max_restart_attempts} attempts, "
            f"base delay {settings.restart_delay_seconds:g}s"
            if settings.auto_restart
            else "disabled"
        )
        click.echo(f"   Services:     {', '.join(settings.critical_services) or '(none)'}")
        click.echo(f"   Auto-restart: {restart}")
        if result.config.data_directory:
            click.echo(f"   Run ledger:   {result.config.data_directory}")

    for label, color, items in (
        ("Error", "red", result.errors),
        ("Warning", "yellow", result.warnings),
    ):
        for item in items:
            click.secho(f"   {label}: ", fg=color, nl=False)
            click.echo(item)

    click.echo()
    if not result.valid:
        sys.exit(1)
