"""Queue inspection CLI commands."""

import asyncio
import json
from datetime import datetime, timezone

import typer

from photoqueue.cli_commands import output, output_status
from photoqueue.config import get_settings
from photoqueue.engine import PhotoQueueClient
from photoqueue.exceptions import StorageError
from photoqueue.sync import UploadQueue

queue_app = typer.Typer(
    name="queue",
    help="Inspect and manage the local upload queue.",
    no_args_is_help=True,
)


def _open_queue() -> UploadQueue:
    try:
        return UploadQueue(get_settings().queue_path)
    except StorageError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _format_created(created_at: int) -> str:
    return datetime.fromtimestamp(created_at / 1000, tz=timezone.utc).isoformat()


@queue_app.command("list")
def list_records(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """List queued photos in send order."""
    with _open_queue() as queue:
        records = queue.list_all()

    data = [
        {"id": r.id, "createdAt": r.created_at, "size": len(r.payload)}
        for r in records
    ]
    if output_json:
        typer.echo(json.dumps(data))
        return

    if not records:
        typer.echo("The queue is empty.")
        return
    for r in records:
        typer.echo(f"{r.id}  {_format_created(r.created_at)}  {len(r.payload)} bytes")


@queue_app.command()
def failed(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """List photos the server kept rejecting."""
    with _open_queue() as queue:
        entries = queue.list_failed()

    if output_json:
        typer.echo(
            json.dumps([{"id": r.id, "createdAt": r.created_at, "error": err} for r, err in entries])
        )
        return

    if not entries:
        typer.echo("No failed uploads.")
        return
    for record, error in entries:
        typer.echo(f"{record.id}  {error}")


@queue_app.command()
def purge(
    days: int = typer.Option(7, "--days", "-d", min=0, help="Keep failures newer than this many days"),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Delete failed uploads older than --days."""
    with _open_queue() as queue:
        removed = queue.cleanup_old(days)

    output({"status": "purged", "removed": removed}, output_json, f"Removed {removed} failed upload(s).")


@queue_app.command()
def clear(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Delete every queued and failed photo without sending it."""
    with _open_queue() as queue:
        total = queue.get_stats()["total"]
        if total and not yes:
            typer.confirm(f"Discard {total} queued or failed photo(s)?", abort=True)
        queue.clear()

    output({"status": "cleared", "removed": total}, output_json, f"Removed {total} photo(s).")


@queue_app.command()
def send(
    record_id: str = typer.Argument(..., help="Id of the queued photo (see: queue list)"),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Send one queued photo now."""

    async def _run():
        async with PhotoQueueClient(get_settings()) as client:
            await client.probe()
            return await client.coordinator.send_one(record_id)

    output_status(asyncio.run(_run()), output_json)


@queue_app.command()
def remove(
    record_id: str = typer.Argument(..., help="Id of the queued photo (see: queue list)"),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Delete one queued photo without sending it."""
    with _open_queue() as queue:
        found = queue.get(record_id) is not None
        if found:
            queue.remove(record_id)

    if not found:
        output({"status": "not_found", "id": record_id}, output_json, f"No queued photo with id {record_id}.")
        raise typer.Exit(1)
    output({"status": "removed", "id": record_id}, output_json, f"Removed {record_id}.")
