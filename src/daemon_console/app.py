"""Typer application and CLI entry point for daemon-console.

Commands::

    daemon-console run              # full sample run against both APIs
    daemon-console users            # directory API only
    daemon-console todos list       # todo-list API: list items
    daemon-console todos add TASK   # todo-list API: add one item
    daemon-console credential       # show the configured credential mode

Every command loads the settings once, resolves the credential, and then
acquires one token per API audience. A
:class:`~daemon_console.exceptions.DaemonConsoleError` is reported on
stderr and ends the run with its ``exit_code``; anything else is written
to a crash log by :func:`main`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional

import typer

from daemon_console import __version__
from daemon_console.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED


app = typer.Typer(
    name="daemon-console",
    help="Call protected APIs as a daemon using the OAuth2 client-credentials grant.",
    no_args_is_help=True,
    add_completion=False,
)

todos_app = typer.Typer(no_args_is_help=True)
app.add_typer(todos_app, name="todos", help="Todo-list API commands.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"daemon-console {__version__}")
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
    config_path: Optional[str] = typer.Option(
        None, "--config", "-c", help="Path to appsettings.json."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~daemon_console.output.OutputManager`,
    configures :mod:`logging`, and stores the settings path in
    ``ctx.obj``.
    """
    from daemon_console.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


@contextmanager
def _reported_errors() -> Iterator[None]:
    """Report a :class:`DaemonConsoleError` and exit with its code."""
    from daemon_console.exceptions import DaemonConsoleError
    from daemon_console.output import error

    try:
        yield
    except DaemonConsoleError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


@contextmanager
def _open_daemon(ctx: typer.Context) -> Iterator[Any]:
    """Load settings, resolve the credential, and yield a ready :class:`Daemon`."""
    from daemon_console.auth import TokenAcquirer, resolve_credential
    from daemon_console.client import ProtectedApiClient
    from daemon_console.config import load_settings
    from daemon_console.daemon import Daemon

    config = load_settings(ctx.obj.get("config_path"))
    credential = resolve_credential(config)
    with ProtectedApiClient() as api:
        yield Daemon(config, credential, api, TokenAcquirer())


def _json_mode() -> bool:
    from daemon_console.output import OutputFormat, get_output

    return get_output().format == OutputFormat.JSON


def _dump(items: list[Any]) -> list[dict[str, Any]]:
    return [item.model_dump(mode="json", by_alias=True) for item in items]


def _print_users(users: list[Any]) -> None:
    from daemon_console.output import print_json, print_table

    if _json_mode():
        print_json(_dump(users))
        return
    print_table(
        ["id", "displayName"],
        [[str(u.id), u.display_name or ""] for u in users],
        title="Users found in the directory",
    )


def _print_todos(items: list[Any], title: str = "Web API result") -> None:
    from daemon_console.output import print_json, print_table

    if _json_mode():
        print_json(_dump(items))
        return
    print_table(["id", "task"], [[str(i.id), i.task] for i in items], title=title)


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@app.command("run")
def run_command(ctx: typer.Context) -> None:
    """Run the full sample: list users, list todos, add one, list again.

    With ``--json`` the whole run is printed as a single JSON object with
    ``users``, ``todos_before``, ``added`` and ``todos_after`` keys.
    """
    from daemon_console.output import info, print_json

    with _reported_errors(), _open_daemon(ctx) as daemon:
        result = daemon.run()
        if result.added is not None:
            info(f"Posted item {result.added.id}: {result.added.task}")
        if _json_mode():
            print_json(
                {
                    "users": _dump(result.users),
                    "todos_before": _dump(result.todos_before),
                    "added": _dump([result.added])[0] if result.added is not None else None,
                    "todos_after": _dump(result.todos_after),
                }
            )
            return
        _print_users(result.users)
        _print_todos(result.todos_before)
        _print_todos(result.todos_after)


@app.command("users")
def users_command(ctx: typer.Context) -> None:
    """List the first five users of the directory."""
    with _reported_errors(), _open_daemon(ctx) as daemon:
        _print_users(daemon.list_users())


@todos_app.command("list")
def todos_list(ctx: typer.Context) -> None:
    """List the items of the todo-list API."""
    with _reported_errors(), _open_daemon(ctx) as daemon:
        _print_todos(daemon.list_todos())


@todos_app.command("add")
def todos_add(
    ctx: typer.Context,
    task: str = typer.Argument(help="Text of the new todo item."),
) -> None:
    """Add one item to the todo-list API."""
    from daemon_console.output import success

    with _reported_errors(), _open_daemon(ctx) as daemon:
        item = daemon.add_todo(task)
        success(f"Added item {item.id}")


@app.command("credential")
def credential_command(ctx: typer.Context) -> None:
    """Show which credential the settings select, without contacting the provider."""
    from daemon_console.auth import describe_credential, resolve_credential
    from daemon_console.config import load_settings
    from daemon_console.output import get_output

    with _reported_errors():
        config = load_settings(ctx.obj.get("config_path"))
        credential = resolve_credential(config)
        get_output().print_data(describe_credential(credential))


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback under the data directory and return its path."""
    from daemon_console.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(f"{type(exc).__name__}: {exc}\n\n{traceback.format_exc()}")
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``daemon-console`` console script.

    Unhandled :class:`~daemon_console.exceptions.DaemonConsoleError`
    instances cause a clean exit with the error's ``exit_code``. All other
    exceptions produce a crash log and a generic failure exit.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from daemon_console.exceptions import DaemonConsoleError
        from daemon_console.output import error

        if isinstance(exc, DaemonConsoleError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
