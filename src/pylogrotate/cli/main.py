"""CLI entry point for pylogrotate.

Invoked as::

    logrotate [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m pylogrotate.cli.main

Commands
--------
- rotate   Rotate the log files described by one or more config files
- status   Show the state file as a table
- service  Re-run the rotation on an interval from a YAML settings file
- version  Show version information
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from pylogrotate.errors import ConfigError, LogRotateError
from pylogrotate.runner import ExitCode, LogRotateRunner, RunResult
from pylogrotate.service.settings import SettingsLoader, run_service
from pylogrotate.state.store import RotationStateStore

console = Console()
err_console = Console(stderr=True)

_DEFAULT_STATE = "logrotate.status"
_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help", "-?", "--usage"]}


def _configure_logging(verbose: bool, debug: bool) -> None:
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group(context_settings=_CONTEXT_SETTINGS)
@click.version_option(package_name="pylogrotate")
def cli() -> None:
    """Rotate, compress, and expire log files by policy."""


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from pylogrotate import __version__

    console.print(
        Panel(
            f"[bold]pylogrotate[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Policy-driven log file rotation.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# rotate
# ---------------------------------------------------------------------------


@cli.command(name="rotate", context_settings=_CONTEXT_SETTINGS)
@click.option("--debug", "-d", is_flag=True, help="Dry run: log every decision, change nothing.")
@click.option("--force", "-f", is_flag=True, help="Rotate even when size and schedule say no.")
@click.option("--verbose", "-v", is_flag=True, help="Log each step.")
@click.option(
    "--state",
    "-s",
    "state_file",
    default=_DEFAULT_STATE,
    show_default=True,
    envvar="LOGROTATE_STATE",
    type=click.Path(dir_okay=False),
    help="State file recording last rotation dates.",
)
@click.option("--mail", "-m", "mail_command", default=None, help="Mail command (not supported).")
@click.argument("configs", nargs=-1, type=click.Path())
@click.pass_context
def rotate_command(
    ctx: click.Context,
    debug: bool,
    force: bool,
    verbose: bool,
    state_file: str,
    mail_command: str | None,
    configs: tuple[str, ...],
) -> None:
    """Rotate the log files described by CONFIGS (files or directories)."""
    if not configs:
        click.echo(ctx.get_help())
        sys.exit(int(ExitCode.OK))

    _configure_logging(verbose, debug)
    if mail_command:
        logging.getLogger(__name__).warning(
            "-m %s is not supported; configure smtpserver in the policy file", mail_command
        )

    runner = LogRotateRunner(state_path=Path(state_file), force=force, dry_run=debug)
    result = runner.run([Path(c) for c in configs])

    if result.exit_code == ExitCode.CONFIG_ERROR:
        err_console.print(f"[red]Configuration error:[/red] {'; '.join(result.errors)}")
    elif result.exit_code == ExitCode.NO_FILES:
        err_console.print("[yellow]No log file sections found.[/yellow]")
    elif verbose or debug:
        _print_summary(result)
    sys.exit(int(result.exit_code))


def _print_summary(result: RunResult) -> None:
    table = Table(title="Rotation summary", box=box.ROUNDED)
    table.add_column("Log file", style="cyan")
    table.add_column("Rotated to")
    table.add_column("Removed", justify="right")
    table.add_column("Script failures", justify="right")
    for outcome in result.rotated:
        table.add_row(
            str(outcome.log_path),
            str(outcome.rotated_path or ""),
            str(len(outcome.removed)),
            str(outcome.script_failures),
        )
    console.print(table)
    if result.errors:
        for error in result.errors:
            err_console.print(f"[red]Error:[/red] {error}")


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


@cli.command(name="status")
@click.option(
    "--state",
    "-s",
    "state_file",
    default=_DEFAULT_STATE,
    show_default=True,
    envvar="LOGROTATE_STATE",
    type=click.Path(dir_okay=False),
    help="State file to show.",
)
def status_command(state_file: str) -> None:
    """Show the last rotation date of every tracked log file."""
    path = Path(state_file)
    if not path.exists():
        err_console.print(f"[red]State file not found:[/red] {path}")
        sys.exit(int(ExitCode.ERROR))

    try:
        entries = RotationStateStore(path, dry_run=True).entries()
    except LogRotateError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(int(ExitCode.ERROR))

    if not entries:
        console.print("[yellow]No rotations recorded.[/yellow]")
        return

    table = Table(title=f"Rotation state ({path})", box=box.ROUNDED)
    table.add_column("Log file", style="cyan")
    table.add_column("Last rotation", justify="right")
    for entry in entries:
        table.add_row(entry.path, entry.last_rotation.isoformat())
    console.print(table)


# ---------------------------------------------------------------------------
# service
# ---------------------------------------------------------------------------


@cli.command(name="service")
@click.argument("settings_file", type=click.Path())
@click.option("--once", is_flag=True, help="Run a single pass and exit.")
def service_command(settings_file: str, once: bool) -> None:
    """Rotate periodically using the YAML SETTINGS_FILE."""
    try:
        settings = SettingsLoader().load(settings_file)
    except ConfigError as exc:
        err_console.print(f"[red]Settings error:[/red] {exc}")
        sys.exit(int(ExitCode.CONFIG_ERROR))

    _configure_logging(settings.verbose, debug=False)
    try:
        exit_code = run_service(settings, once=once)
    except KeyboardInterrupt:
        err_console.print("[yellow]Service interrupted.[/yellow]")
        exit_code = int(ExitCode.OK)
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
