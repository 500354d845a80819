"""
CLI command for service monitoring, recovery and dependency analysis.

Thin wrapper over ``hostcare.core.use_cases.services``; run outcomes
become a process exit status here.
"""

from __future__ import annotations

import json
import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager

import click

from hostcare.core.models.dependency import DependencyReport
from hostcare.core.models.recovery import RecoveryOutcome, RecoveryReport
from hostcare.core.models.service import HealthSnapshot, HealthStatus

_STATUS_STYLE = {
    HealthStatus.RUNNING: ("✓", "green", "RUNNING"),
    HealthStatus.FAILED: ("✗", "red", "FAILED"),
    HealthStatus.NOT_FOUND: ("?", "yellow", "NOT FOUND"),
    HealthStatus.UNAVAILABLE: ("⊘", "magenta", "UNAVAILABLE"),
}

_OUTCOME_COLOR = {
    RecoveryOutcome.RECOVERED: "green",
    RecoveryOutcome.EXHAUSTED: "red",
    RecoveryOutcome.UNAVAILABLE: "magenta",
    RecoveryOutcome.CANCELLED: "yellow",
    RecoveryOutcome.NOT_ATTEMPTED: "yellow",
}


@contextmanager
def _cancel_on_signals(cancel: threading.Event, recovering: bool) -> Iterator[None]:
    """Turn SIGINT/SIGTERM into a cancellation request while recovery runs.

    Modes that never restart anything keep the default handlers, so an
    interrupt stops them immediately.
    """
    if not recovering or threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, _frame: object) -> None:
        click.secho(f"\n   Received signal {signum}; finishing in-flight restarts...", fg="yellow", err=True)
        cancel.set()

    previous = {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _echo_snapshot(title: str, snapshot: HealthSnapshot, verbose: bool) -> None:
    click.secho(f"   {title}", fg="white", bold=True)
    if not snapshot.entries:
        click.echo("     (no services configured)")
    for entry in snapshot.entries:
        icon, color, label = _STATUS_STYLE[entry.status]
        click.secho(f"     {icon} {entry.name} ", fg=color, nl=False)
        click.echo(f"— {label}")
        if verbose and entry.diagnostic:
            for line in entry.diagnostic.splitlines()[:10]:
                click.echo(f"       │ {line}")
    click.echo(
        f"     Total: {snapshot.total} | Running: {len(snapshot.running)} | "
        f"Failed: {len(snapshot.failed)} | Not found: {len(snapshot.not_found)}"
        + (f" | Unavailable: {len(snapshot.unavailable)}" if snapshot.unavailable else "")
    )
    click.echo()


def _echo_recovery(report: RecoveryReport) -> None:
    click.secho("   Recovery", fg="white", bold=True)
    if not report.enabled:
        click.secho("     Auto-restart is disabled; nothing was restarted", fg="yellow")
    for name, rec in report.services.items():
        color = _OUTCOME_COLOR.get(rec.outcome, "white")
        click.secho(f"     • {name} ", nl=False)
        click.secho(rec.outcome.value, fg=color, nl=False)
        click.echo(f" ({rec.attempt_count} attempts)" if rec.attempts else "")
        for attempt in rec.attempts:
            wait = f", next in {attempt.delay_before_next:.0f}s" if attempt.delay_before_next else ""
            click.echo(f"       #{attempt.attempt}: {attempt.outcome.value}{wait}")
    click.echo()


def _echo_dependencies(report: DependencyReport) -> None:
    click.secho("   Dependencies", fg="white", bold=True)
    for name, deps in report.services.items():
        click.secho(f"     {name}", bold=True)
        if deps.error:
            click.secho(f"       Unavailable: {deps.error}", fg="magenta")
            continue
        if not deps.found:
            click.secho("       Status: Service not found", fg="yellow")
            continue
        if deps.active is not None:
            click.secho(
                f"       Status: {'ACTIVE' if deps.active else 'INACTIVE'}",
                fg="green" if deps.active else "red",
            )
        for label, targets in (
            ("Requires", deps.requires),
            ("Required by", deps.required_by),
            ("Wants", deps.wants),
        ):
            click.echo(f"       {label}: {', '.join(targets) if targets else 'None'}")
    click.echo()


@click.command()
@click.argument(
    "mode",
    type=click.Choice(["check", "monitor", "restart", "dependencies", "deps", "full", "all"]),
    default="check",
)
@click.argument("targets", nargs=-1)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--mock", is_flag=True, help="Use an in-memory control plane (no systemctl).")
@click.option("--no-notify", is_flag=True, help="Don't send failure notifications.")
@click.pass_context
def services(
    ctx: click.Context,
    mode: str,
    targets: tuple[str, ...],
    as_json: bool,
    mock: bool,
    no_notify: bool,
) -> None:
    """Monitor, restart, and analyze critical services.

    MODE is one of check, restart, dependencies or full. TARGETS
    overrides the configured service list.

    Exit status is the number of services left failed or unreachable.

    Examples:

        hostcare services check

        hostcare services restart nginx

        hostcare services full --json
    """
    from hostcare.core.config.loader import ConfigError, load_config
    from hostcare.core.models.service import InvalidServiceName, validate_service_name
    from hostcare.core.use_cases.services import (
        ControlPlaneUnavailable,
        build_control_plane,
        build_notifier,
        resolve_mode,
        run_services,
    )

    try:
        names = [validate_service_name(t) for t in targets]
    except InvalidServiceName as e:
        raise click.BadParameter(str(e), param_hint="TARGETS") from e

    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    control_plane = build_control_plane(config, mock=mock)
    notifier = None if no_notify else build_notifier(config)
    cancel = threading.Event()

    try:
        with _cancel_on_signals(cancel, recovering=resolve_mode(mode) in ("restart", "full")):
            result = run_services(
                mode,
                config,
                control_plane,
                targets=names or None,
                notifier=notifier,
                cancel=cancel,
            )
    except ControlPlaneUnavailable as e:
        result = e.result

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    label = "[mock] " if mock else ""
    click.secho(f"\n🩺 {label}Service management — {result.mode}", fg="cyan", bold=True)
    click.echo()

    if result.error:
        click.secho(f"   ❌ {result.error}", fg="red")
        click.echo()

    verbose = ctx.obj.get("verbose", False)
    if result.snapshot is not None:
        _echo_snapshot("Status", result.snapshot, verbose)
    if result.recovery is not None:
        _echo_recovery(result.recovery)
    if result.verification is not None:
        _echo_snapshot("Status after recovery", result.verification, verbose)
    if result.dependencies is not None:
        _echo_dependencies(result.dependencies)

    unresolved = result.unresolved
    if unresolved:
        click.secho(f"   Unresolved: {' '.join(unresolved)}", fg="red", bold=True)
    elif result.mode == "dependencies":
        click.secho("   Dependency analysis complete", fg="green", bold=True)
    else:
        click.secho("   All services healthy", fg="green", bold=True)
    click.echo()

    sys.exit(result.exit_code)
