"""CLI command modules for the PhotoQueue client."""

import json

import typer

from photoqueue.sync import StatusMessage


def output(data: dict, as_json: bool, human_message: str) -> None:
    """Output data as JSON or human-readable format."""
    if as_json:
        typer.echo(json.dumps(data))
    else:
        typer.echo(human_message)


def output_status(message: StatusMessage, as_json: bool) -> None:
    """Print a sync status; exit non-zero for failures."""
    output(
        {"status": message.status.value, "message": message.text, "level": message.level},
        as_json,
        message.text,
    )
    if message.level == "bad":
        raise typer.Exit(1)
