"""Shell cache CLI commands."""

import asyncio

import typer

from photoqueue.cli_commands import output
from photoqueue.config import get_settings
from photoqueue.engine import PhotoQueueClient
from photoqueue.exceptions import NetworkError, PhotoQueueError
from photoqueue.shell import Request

shell_app = typer.Typer(
    name="shell",
    help="Application shell cache - install, activate, fetch.",
    no_args_is_help=True,
)


@shell_app.command()
def install(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Fetch and cache every shell resource for the current version."""
    settings = get_settings()

    async def _run() -> int:
        async with PhotoQueueClient(settings) as client:
            return await client.cache_manager.install()

    try:
        count = asyncio.run(_run())
    except PhotoQueueError as e:
        output({"status": "error", "message": str(e)}, output_json, f"Install failed: {e}")
        raise typer.Exit(1)

    output(
        {"status": "installed", "cache": settings.cache_name, "resources": count},
        output_json,
        f"{settings.cache_name}: {count} resource(s) cached"
        if count
        else f"{settings.cache_name} is already installed.",
    )


@shell_app.command()
def activate(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Make the installed version current and delete older caches."""
    settings = get_settings()

    async def _run() -> list[str]:
        async with PhotoQueueClient(settings) as client:
            return client.cache_manager.activate()

    try:
        deleted = asyncio.run(_run())
    except PhotoQueueError as e:
        output({"status": "error", "message": str(e)}, output_json, f"Activate failed: {e}")
        raise typer.Exit(1)

    output(
        {"status": "active", "cache": settings.cache_name, "deleted": deleted},
        output_json,
        f"{settings.cache_name} is active. Deleted: {', '.join(deleted) or 'none'}",
    )


@shell_app.command()
def fetch(
    path: str = typer.Argument(..., help="Path or URL to request"),
    navigate: bool = typer.Option(
        False,
        "--navigate",
        "-n",
        help="Treat the request as a page navigation",
    ),
) -> None:
    """Request a resource through the cache routing policy and print it."""

    async def _run():
        async with PhotoQueueClient(get_settings()) as client:
            request = Request(url=path, mode="navigate" if navigate else "cors")
            return client.interceptor.route(request), await client.interceptor.handle(request)

    try:
        route, response = asyncio.run(_run())
    except NetworkError as e:
        typer.echo(f"Network error: {e}", err=True)
        raise typer.Exit(1)

    if response is None:
        typer.echo(f"{path}: not intercepted ({route.value})")
        return
    typer.echo(f"{response.status} {route.value} {len(response.body)} bytes")
