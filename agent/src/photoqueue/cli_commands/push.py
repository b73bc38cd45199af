"""Push notification CLI commands."""

import asyncio

import httpx
import typer

from photoqueue.cli_commands import output, output_status
from photoqueue.config import get_settings
from photoqueue.engine import PhotoQueueClient
from photoqueue.push import Notification, NotificationDispatcher

push_app = typer.Typer(
    name="push",
    help="Push notifications - subscribe and preview.",
    no_args_is_help=True,
)


@push_app.command()
def key(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Print the server's VAPID public key."""

    async def _run() -> str:
        async with PhotoQueueClient(get_settings()) as client:
            return await client.uploader.vapid_public_key()

    try:
        public_key = asyncio.run(_run())
    except httpx.HTTPError as e:
        output({"status": "error", "message": str(e)}, output_json, f"Error: {e}")
        raise typer.Exit(1)

    output({"publicKey": public_key}, output_json, public_key)


@push_app.command()
def enable(
    endpoint: str = typer.Option(..., "--endpoint", help="Push service endpoint URL"),
    p256dh: str = typer.Option(..., "--p256dh", help="Client public key"),
    auth: str = typer.Option(..., "--auth", help="Client auth secret"),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Register a push subscription with the server."""
    subscription = {
        "endpoint": endpoint,
        "expirationTime": None,
        "keys": {"p256dh": p256dh, "auth": auth},
    }

    async def _run():
        async with PhotoQueueClient(get_settings()) as client:
            return await client.coordinator.enable_push(subscription)

    output_status(asyncio.run(_run()), output_json)


@push_app.command()
def show(
    payload: str = typer.Argument("", help="Push payload JSON ({title, body, url})"),
) -> None:
    """Render a push payload the way it would be displayed."""

    def _display(notification: Notification) -> None:
        typer.echo(notification.title)
        typer.echo(notification.body)
        typer.echo(f"-> {notification.url}")

    dispatcher = NotificationDispatcher(display=_display, open_window=typer.launch)
    dispatcher.handle_push(payload)
