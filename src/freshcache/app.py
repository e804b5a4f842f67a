"""Typer application and CLI entry point for freshcache.

This module wires together the top-level Typer application and registers the
built-in sub-commands (``guide``, ``links``, ``pack``, ``config``,
``cache``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, registers commands, and
invokes the Typer app. :class:`~freshcache.exceptions.FreshcacheError`
exits with its own code; any other unhandled exception is written to a crash
log under the data directory.

See Also:
    :mod:`freshcache.config`: Configuration resolution.
    :mod:`freshcache.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from freshcache import __version__
from freshcache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="freshcache",
    help="Freshness-aware cache for the e-APR document guide and reference links.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Built-in commands
# ------------------------------------------------------------------ #

from freshcache.commands.cache import cache_app  # noqa: E402
from freshcache.commands.config import config_app  # noqa: E402
from freshcache.commands.guide import guide_app  # noqa: E402
from freshcache.commands.links import links_app  # noqa: E402
from freshcache.commands.pack import pack_app  # noqa: E402

app.add_typer(guide_app, name="guide", help="Load and manage the document guide.")
app.add_typer(links_app, name="links", help="Check the reference links.")
app.add_typer(pack_app, name="pack", help="View and edit checklist progress.")
app.add_typer(config_app, name="config", help="Configuration management.")
app.add_typer(cache_app, name="cache", help="Inspect and clear the local store.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"freshcache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show cache decisions."
    ),
    offline: bool = typer.Option(
        False, "--offline", help="Refuse all network requests and serve stored data."
    ),
    guide_url: Optional[str] = typer.Option(
        None, "--guide-url", help="Override the guide URL."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~freshcache.output.OutputManager` from
    CLI flags, and stores the configuration overrides (``offline``,
    ``guide_url``) and ``force`` in the Typer context so that sub-commands
    can read them via ``ctx.obj``.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress informational messages and freshness notices.
        verbose: Enable debug-level diagnostic output.
        offline: Treat every request as blocked.
        guide_url: Guide URL override (highest precedence).
        force: Skip interactive confirmations.
    """
    from freshcache.config import load_global_config
    from freshcache.exceptions import ConfigError
    from freshcache.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        try:
            fmt = OutputFormat(load_global_config().output.format)
        except (ConfigError, ValueError):
            pass

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)

    ctx.ensure_object(dict)
    ctx.obj["offline"] = offline
    ctx.obj["guide_url"] = guide_url
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path.

    Args:
        exc: The unhandled exception to log.

    Returns:
        Absolute path to the written crash log file.
    """
    from freshcache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``freshcache`` console script.

    Unhandled :class:`~freshcache.exceptions.FreshcacheError` instances
    cause a clean exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
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
        from freshcache.exceptions import FreshcacheError
        from freshcache.output import error

        if isinstance(exc, FreshcacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
