"""Typer application and CLI entry point for reqpipe.

Registers the built-in sub-commands (``request``, ``cache``, ``config``)
on a single Typer application. :func:`main` is the console-script entry
point declared in ``pyproject.toml``: it installs a SIGINT handler, runs
the app, maps :class:`~reqpipe.exceptions.ReqpipeError` to its exit code,
and writes a crash log for anything unexpected.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from reqpipe import __version__
from reqpipe.commands.cache import cache_app
from reqpipe.commands.config import config_app
from reqpipe.commands.request import request_command
from reqpipe.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="reqpipe",
    help="Send HTTP requests through a composable cache, retry and concurrency pipeline.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("request")(request_command)
app.add_typer(cache_app, name="cache", help="Durable response cache management.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"reqpipe {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Route library debug logs to stderr when ``--verbose`` is set."""
    if verbose:
        logging.basicConfig(
            stream=sys.stderr,
            format="%(levelname)s %(name)s: %(message)s",
        )
        logging.getLogger("reqpipe").setLevel(logging.DEBUG)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show version and exit.",
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", "-b", help="Base URL for relative request URLs."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmations."),
) -> None:
    """Root callback: install the output manager and share global flags via ``ctx.obj``."""
    from reqpipe.config import resolve_config
    from reqpipe.exceptions import ConfigError
    from reqpipe.output import OutputFormat, OutputManager, set_output

    cli_format = "json" if json_output else "plain" if plain_output else None
    try:
        config = resolve_config(cli_base_url=base_url, cli_format=cli_format)
        fmt = OutputFormat(config.output.format)
    except ConfigError:
        # The command that loads the config reports the problem;
        # ``config reset`` has to stay reachable.
        fmt = OutputFormat(cli_format or OutputFormat.AUTO.value)

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["base_url"] = base_url
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback under the data directory and return its path."""
    from reqpipe.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now().strftime('%Y%m%d-%H%M%S')}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """Console-script entry point.

    :class:`~reqpipe.exceptions.ReqpipeError` exits with the error's
    ``exit_code``; other exceptions produce a crash log and exit 1.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from reqpipe.exceptions import ReqpipeError
        from reqpipe.output import error

        if isinstance(exc, ReqpipeError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
