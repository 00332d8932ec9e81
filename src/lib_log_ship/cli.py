"""Command-line adapter for the shipping core.

Purpose
-------
Offer a small operator surface: print package metadata, or push the lines of a
file (or stdin) through the same buffer, flusher, and sender that host
applications use, then report what happened.

Contents
--------
* :func:`cli` - click group with ``--use-dotenv`` and ``--traceback`` toggles.
* ``info`` - metadata banner.
* ``ship`` - enqueue lines, stop with a final flush, render a summary table.
* :func:`main` - ``lib_cli_exit_tools`` entry point used by the console script.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from typing import IO, Any

import click
import lib_cli_exit_tools
from rich.console import Console
from rich.table import Table

from . import __init__conf__
from . import config as log_config
from . import runtime

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(
    help=__init__conf__.title,
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=True,
)
@click.version_option(
    version=__init__conf__.version,
    prog_name=__init__conf__.shell_command,
    message=f"{__init__conf__.shell_command} version {__init__conf__.version}",
)
@click.option(
    "--use-dotenv/--no-use-dotenv",
    default=False,
    help=f"Load environment variables from a nearby .env (also via {log_config.DOTENV_ENV_VAR}).",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors.",
)
@click.pass_context
def cli(ctx: click.Context, use_dotenv: bool, traceback: bool) -> None:
    """Root command; prints the metadata banner when no subcommand is given."""

    explicit: bool | None = None
    if ctx.get_parameter_source("use_dotenv") is not click.core.ParameterSource.DEFAULT:
        explicit = use_dotenv
    if log_config.should_use_dotenv(explicit=explicit, env_value=os.getenv(log_config.DOTENV_ENV_VAR)):
        log_config.enable_dotenv()

    if ctx.get_parameter_source("traceback") is not click.core.ParameterSource.DEFAULT:
        lib_cli_exit_tools.config.traceback = traceback
        lib_cli_exit_tools.config.traceback_force_color = traceback

    if ctx.invoked_subcommand is None:
        click.echo(runtime.summary_info(), nl=False)


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print resolved package metadata."""

    click.echo(runtime.summary_info(), nl=False)


@cli.command("ship", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--url", default=None, help="Collector endpoint (defaults to LOG_SHIP_URL).")
@click.option("--source-name", default=None, help="Value of the X-Sumo-Name header.")
@click.option("--source-host", default=None, help="Value of the X-Sumo-Host header.")
@click.option("--source-category", default=None, help="Value of the X-Sumo-Category header.")
@click.option("--messages-per-request", type=click.IntRange(min=1), default=None, help="Lines per HTTP request.")
@click.option("--max-retries", type=click.IntRange(min=-1), default=None, help="Retries per request; -1 retries forever.")
@click.option(
    "--flush-all/--no-flush-all",
    default=True,
    show_default=True,
    help="Send every buffered line on shutdown instead of a single final batch.",
)
@click.option("--compress/--no-compress", default=True, show_default=True, help="Gzip request bodies.")
def cli_ship(
    source: IO[str],
    url: str | None,
    source_name: str | None,
    source_host: str | None,
    source_category: str | None,
    messages_per_request: int | None,
    max_retries: int | None,
    flush_all: bool,
    compress: bool,
) -> None:
    """Ship the lines of SOURCE (default: stdin) to the collector."""

    overrides: dict[str, Any] = {
        "source_name": source_name,
        "source_host": source_host,
        "source_category": source_category,
        "messages_per_request": messages_per_request,
        "max_retries": max_retries,
        "flush_all_before_stopping": flush_all,
        "compress": compress,
    }
    try:
        active = runtime.init(url=url, **{key: value for key, value in overrides.items() if value is not None})
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    read = accepted = 0
    try:
        for line in _normalise_lines(source):
            read += 1
            if active.add(line):
                accepted += 1
    finally:
        clean = runtime.shutdown()

    Console().print(_summary_table(active, read=read, accepted=accepted, clean=clean))
    if not clean:
        raise click.ClickException("Timed out waiting for the final flush")


def _normalise_lines(source: Iterable[str]) -> Iterable[str]:
    for line in source:
        if not line.strip():
            continue
        yield line if line.endswith("\n") else line + "\n"


def _summary_table(active: runtime.ShippingRuntime, *, read: int, accepted: int, clean: bool) -> Table:
    table = Table(title="lib_log_ship summary", show_header=True)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    rows = [
        ("endpoint", active.settings.url),
        ("lines read", str(read)),
        ("lines accepted", str(accepted)),
        ("lines evicted", str(active.buffer.evicted_count)),
        ("lines dropped", str(active.buffer.dropped_count)),
        ("lines left in buffer", str(active.buffer.size())),
        ("flushes", str(active.flusher.scheduler.flush_count)),
        ("clean shutdown", "yes" if clean else "no"),
    ]
    for label, value in rows:
        table.add_row(label, value)
    return table


def main(argv: Sequence[str] | None = None, *, restore_traceback: bool = True) -> int:
    """Run the CLI through ``lib_cli_exit_tools`` and return the exit code.

    Traceback preferences changed by ``--traceback`` are restored afterwards
    so repeated in-process invocations start from the same state.
    """

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        return lib_cli_exit_tools.run_cli(
            cli,
            list(argv) if argv is not None else None,
            prog_name=__init__conf__.shell_command,
        )
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


__all__ = ["cli", "main"]
