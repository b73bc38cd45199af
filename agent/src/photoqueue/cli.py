"""PhotoQueue CLI - Command-line interface for the offline-first client."""

import typer

from photoqueue import __version__
from photoqueue.cli_commands.capture import capture_command, flush_command, watch_command
from photoqueue.cli_commands.push import push_app
from photoqueue.cli_commands.queue import queue_app
from photoqueue.cli_commands.shell import shell_app
from photoqueue.cli_commands.status import status_command

app = typer.Typer(
    name="photoqueue",
    help="PhotoQueue - offline-first photo uploads with background sync.",
    no_args_is_help=True,
)

# Register subcommands
app.add_typer(queue_app, name="queue")
app.add_typer(shell_app, name="shell")
app.add_typer(push_app, name="push")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"photoqueue {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """PhotoQueue - offline-first photo uploads."""
    pass


app.command(name="capture")(capture_command)
app.command(name="flush")(flush_command)
app.command(name="watch")(watch_command)
app.command(name="status")(status_command)


if __name__ == "__main__":
    app()
