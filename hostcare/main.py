"""
hostcare — CLI entrypoint.

    hostcare services check
    hostcare --verbose services restart nginx
    hostcare config check --json

Sub-commands live in ``hostcare/ui/cli/``; this module only owns the
global options and the one-time logging setup.
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from hostcare import __version__
from hostcare.core.observability.logging_config import setup_logging
from hostcare.ui.cli.config import config
from hostcare.ui.cli.history import history
from hostcare.ui.cli.services import services


def _console_level(debug: bool, verbose: bool, quiet: bool) -> str:
    """Flags win over HOSTCARE_LOG_LEVEL; the most talkative flag wins."""
    for enabled, name in ((debug, "DEBUG"), (verbose, "INFO"), (quiet, "ERROR")):
        if enabled:
            return name
    return os.environ.get("HOSTCARE_LOG_LEVEL", "WARNING")


@click.group()
@click.version_option(__version__, prog_name="hostcare")
@click.option("-v", "--verbose", is_flag=True, help="Log status changes and attempts.")
@click.option("-q", "--quiet", is_flag=True, help="Log errors only.")
@click.option("--debug", is_flag=True, help="Log every control-plane call.")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="hostcare.yml to use instead of searching for one.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: Path | None,
) -> None:
    """hostcare — keep a Linux host's critical services running."""
    ctx.ensure_object(dict)
    ctx.obj.update(verbose=verbose, quiet=quiet, debug=debug, config_path=config_path)

    setup_logging(
        level=_console_level(debug, verbose, quiet),
        log_file=os.environ.get("HOSTCARE_LOG_FILE"),
        log_file_level=os.environ.get("HOSTCARE_LOG_FILE_LEVEL"),
        log_dir=os.environ.get("HOSTCARE_LOG_DIR"),
    )


cli.add_command(services)
cli.add_command(config)
cli.add_command(history)


if __name__ == "__main__":
    cli()
