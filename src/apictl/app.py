"""Typer application factory and CLI entry point for apictl.

This module wires together the top-level Typer application, the built-in
``config`` sub-commands and one lazily parsed command group per definition
document (see :mod:`apictl.generator`).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, builds the CLI for the
default :class:`~apictl.runtime.Runtime` and invokes it. Unhandled
exceptions are written to a crash log under the data directory.

See Also:
    :mod:`apictl.config`: Profile and configuration resolution.
    :mod:`apictl.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import os
import signal
import stat
import sys
import traceback
from datetime import datetime
from typing import Any, BinaryIO, Optional

import click
import typer

from apictl import __version__
from apictl.exit_codes import EXIT_GENERIC_FAILURE
from apictl.runtime import Runtime


app = typer.Typer(
    name="apictl",
    help="Call APIs described by definition documents.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"apictl {__version__}")
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
    profile: Optional[str] = typer.Option(
        None, "--profile", help="Profile name to use."
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Echo requests and responses to stdout."
    ),
    insecure: bool = typer.Option(
        False, "--insecure", help="Skip TLS certificate checks."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~apictl.output.OutputManager` and stores
    the common options in the context so generated commands can fall back
    on them via ``ctx.find_root().obj``.
    """
    from apictl.output import OutputManager, set_output

    set_output(OutputManager(no_color=no_color))

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["debug"] = debug
    ctx.obj["insecure"] = insecure


# ------------------------------------------------------------------ #
# Config
# ------------------------------------------------------------------ #

config_app = typer.Typer(no_args_is_help=True, help="Inspect the configured profiles.")
app.add_typer(config_app, name="config")


def _runtime(ctx: typer.Context) -> Optional[Runtime]:
    return (ctx.find_root().obj or {}).get("runtime")


@config_app.command("list")
def config_list(ctx: typer.Context) -> None:
    """List the configured profiles.

    Example::

        apictl config list
    """
    from apictl.config import load_config
    from apictl.exceptions import ApictlError
    from apictl.output import error, print_table

    runtime = _runtime(ctx)
    try:
        config = load_config(runtime.config_path if runtime else None)
    except ApictlError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    rows = [
        [p.name, p.organization or "", p.tenant or "", p.uri or ""]
        for p in config.profiles
    ]
    print_table(["name", "organization", "tenant", "uri"], rows, title="Profiles")


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the active profile after environment overrides.

    Secrets in the auth block are masked.

    Example::

        apictl config show
        apictl --profile staging config show
    """
    from apictl.config import load_config, resolve_profile
    from apictl.exceptions import ApictlError
    from apictl.output import error, format_response

    root = ctx.find_root().obj or {}
    runtime = _runtime(ctx)
    try:
        config = load_config(runtime.config_path if runtime else None)
        profile = resolve_profile(config, root.get("profile"))
    except ApictlError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    data = profile.model_dump(mode="json", by_alias=True, exclude_none=True)
    auth = data.get("auth") or {}
    for key in ("pat", "clientSecret"):
        if key in auth:
            auth[key] = "***"
    format_response(data)


# ------------------------------------------------------------------ #
# CLI assembly
# ------------------------------------------------------------------ #


def build_cli(runtime: Runtime) -> click.Group:
    """Return the root click group with one sub-group per definition.

    Example::

        cli = build_cli(Runtime.from_environment())
        cli(prog_name="apictl")
    """
    from apictl.generator import DefinitionGroup

    root = typer.main.get_group(app)
    root.context_settings = {**root.context_settings, "obj": {"runtime": runtime}}
    for name in runtime.definition_names():
        if name in root.commands:
            continue
        root.add_command(DefinitionGroup(name, runtime), name)
    return root


def _piped_stdin() -> Optional[BinaryIO]:
    """Return stdin when data is piped or redirected into the process."""
    try:
        mode = os.fstat(sys.stdin.fileno()).st_mode
    except (AttributeError, OSError, ValueError):
        return None
    if stat.S_ISFIFO(mode) or stat.S_ISREG(mode):
        return sys.stdin.buffer
    return None


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from apictl.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``apictl`` console script.

    Unhandled :class:`~apictl.exceptions.ApictlError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by click or explicitly).
    """
    _setup_signal_handlers()
    try:
        cli = build_cli(Runtime.from_environment(stdin=_piped_stdin()))
        cli(prog_name="apictl")
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from apictl.exceptions import ApictlError
        from apictl.output import error

        if isinstance(exc, ApictlError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
