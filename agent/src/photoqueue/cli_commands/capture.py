"""Capture, flush and watch commands."""

import asyncio
from pathlib import Path

import typer

from photoqueue.cli_commands import output, output_status
from photoqueue.config import get_settings
from photoqueue.engine import PhotoQueueClient
from photoqueue.logging import setup_logging
from photoqueue.sync import StatusMessage


def capture_command(
    path: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Image file to upload",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Upload a photo now, or queue it when the server is unreachable."""

    async def _run() -> StatusMessage:
        async with PhotoQueueClient(get_settings()) as client:
            await client.probe()
            return await client.submit_file(path)

    try:
        message = asyncio.run(_run())
    except (ValueError, OSError) as e:
        output({"status": "error", "message": str(e)}, output_json, f"Error: {e}")
        raise typer.Exit(1)

    output_status(message, output_json)


def flush_command(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Send every queued photo, oldest first."""

    async def _run() -> StatusMessage:
        async with PhotoQueueClient(get_settings()) as client:
            await client.probe()
            return await client.coordinator.flush()

    output_status(asyncio.run(_run()), output_json)


def watch_command(
    log_file: Path = typer.Option(
        None,
        "--log-file",
        help="Also write JSON logs to this file",
    ),
) -> None:
    """Watch connectivity and sync the queue whenever the server comes back.

    Press Ctrl+C to stop.
    """
    settings = get_settings()
    setup_logging(settings.log_level, log_file=log_file)

    def _print(message: StatusMessage) -> None:
        typer.echo(f"[{message.level}] {message.text}")

    async def _run() -> None:
        async with PhotoQueueClient(settings) as client:
            client.on_status(_print)
            await client.start()
            typer.echo(
                "Watching %s (online: %s). Press Ctrl+C to stop."
                % (settings.server_url, client.session.online)
            )
            await asyncio.Event().wait()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        typer.echo("\nStopped.")
