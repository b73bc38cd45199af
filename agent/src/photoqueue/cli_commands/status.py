"""Status command for the PhotoQueue CLI."""

import asyncio
import json

import typer

from photoqueue.config import get_settings
from photoqueue.engine import PhotoQueueClient


def status_command(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Show server reachability, queue statistics and the shell cache version."""

    async def _run() -> dict:
        async with PhotoQueueClient(get_settings()) as client:
            await client.probe()
            return client.get_status()

    status_data = asyncio.run(_run())

    if output_json:
        typer.echo(json.dumps(status_data))
        return

    queue = status_data["queue"]
    cache = status_data["cache"]
    typer.echo("")
    typer.echo("PhotoQueue Status")
    typer.echo("-----------------")
    typer.echo(f"Server: {status_data['server_url']} ({'online' if status_data['online'] else 'offline'})")
    typer.echo(f"Queue: {queue['pending']} pending uploads")
    if queue["failed"]:
        typer.echo(f"Failed: {queue['failed']} uploads (see: photoqueue queue failed)")
    typer.echo(f"Shell cache: {cache['name']} ({cache['state']})")
    typer.echo("")
