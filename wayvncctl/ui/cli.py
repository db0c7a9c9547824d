"""Main CLI entry point - one method call per invocation."""

import logging
import sys
from typing import Optional

import typer

from wayvncctl import __version__
from wayvncctl.core.configs import get_client_config
from wayvncctl.core.signals import get_cancellation
from wayvncctl.ctl.address import resolve_address
from wayvncctl.ctl.args import EVENT_RECEIVE, ArgumentError, request_from_args
from wayvncctl.ctl.client import ClientFlags, ClientSession
from wayvncctl.ctl.connection import NO_WAIT, WAIT_FOREVER
from wayvncctl.ctl.errors import Cancelled, CtlError
from wayvncctl.ui.output import OutputPrinter

app = typer.Typer(
    add_completion=False,
    help="Control a running wayvnc instance over its control socket.",
)

# Everything after the method name is passed through as method params,
# including --help, which becomes `help --command=<method>`.
CONTEXT_SETTINGS = {
    "allow_extra_args": True,
    "ignore_unknown_options": True,
    "allow_interspersed_args": False,
    "help_option_names": ["-h", "--help"],
}

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
    logging.getLogger("wayvncctl").setLevel(logging.DEBUG if verbose else logging.ERROR)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"wayvncctl: {__version__}")
        raise typer.Exit(0)


@app.command(
    context_settings=CONTEXT_SETTINGS,
    epilog="Run 'wayvncctl help' for a list of available commands.",
)
def main(
    ctx: typer.Context,
    method: str = typer.Argument(..., help="Command to run, or 'event-receive' to follow events"),
    socket: Optional[str] = typer.Option(
        None, "--socket", "-S", help="Control socket path (default: $XDG_RUNTIME_DIR/wayvncctl)"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output json on stdout"),
    reconnect: bool = typer.Option(
        False, "--reconnect", "-r", help="Reconnect after wayvnc restarts (event-receive only)"
    ),
    wait: bool = typer.Option(False, "--wait", "-w", help="Wait for wayvnc to start up"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
    version: bool = typer.Option(
        False, "--version", "-V", help="Show client version", callback=_version_callback, is_eager=True
    ),
) -> None:
    """
    Send METHOD with --key=value params to wayvnc and print the result.

    Example: wayvncctl output-set --output-name=DP-1
    """
    try:
        config = get_client_config()
    except ValueError as e:
        typer.echo(f"Error loading configuration: {e}", err=True)
        raise typer.Exit(1)

    _setup_logging(verbose or config.debug)

    try:
        request = request_from_args(method, ctx.args)
    except ArgumentError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    raw = json_output or config.json
    flags = ClientFlags.NONE
    if raw:
        flags |= ClientFlags.RAW_OUTPUT
    if reconnect or config.reconnect:
        flags |= ClientFlags.AUTO_RECONNECT

    try:
        address = resolve_address(socket or config.socket)
    except CtlError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    timeout = WAIT_FOREVER if (wait or config.wait) else NO_WAIT
    cancellation = get_cancellation()
    sink = OutputPrinter(raw=raw, color=sys.stdout.isatty() and not raw)

    # Signals only flip the flag while we may block indefinitely.
    interruptible = timeout == WAIT_FOREVER or request.method == EVENT_RECEIVE
    if interruptible:
        cancellation.reset()
        cancellation.install()
    try:
        with ClientSession(
            address,
            flags=flags,
            sink=sink,
            cancellation=cancellation,
            buffer_size=config.read_buffer_size,
            command_timeout_ms=config.command_timeout_ms,
        ) as session:
            session.connect(timeout)
            code = session.run_command(request)
    except Cancelled:
        typer.echo("Cancelled", err=True)
        raise typer.Exit(1)
    except CtlError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        if interruptible:
            cancellation.uninstall()

    raise typer.Exit(code)


def run() -> None:
    """Entry point for console script mapping."""
    app()


if __name__ == "__main__":
    run()
