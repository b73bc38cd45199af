"""Strict parsing of base64 image data URLs.

Parsing never guesses: anything other than
``data:image/<subtype>;base64,<non-empty valid base64>`` is an error
carrying a reason suitable for the 400 response body.
"""

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Any

_DATA_URL_RE = re.compile(r"^data:(image/[\w.+-]+);base64,(.*)$", re.DOTALL)


@dataclass(frozen=True)
class Ok:
    """A successfully decoded image."""

    mime: str
    data: bytes


@dataclass(frozen=True)
class Err:
    """Why a payload was rejected."""

    reason: str


ParseResult = Ok | Err


def parse_data_url(value: Any) -> ParseResult:
    """Decode an image data URL.

    Args:
        value: The raw ``payload`` field of an upload request

    Returns:
        Ok(mime, data) or Err(reason)
    """
    if not isinstance(value, str) or not value.startswith("data:image/"):
        return Err("Expected payload (base64 image data URL).")

    match = _DATA_URL_RE.match(value)
    if not match:
        return Err("Malformed data URL.")

    mime, body = match.group(1).lower(), match.group(2)
    if not body:
        return Err("Empty image data.")

    try:
        data = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError):
        return Err("Invalid base64 image data.")

    if not data:
        return Err("Empty image data.")
    return Ok(mime=mime, data=data)


def encode_data_url(mime: str, data: bytes) -> str:
    """Inverse of parse_data_url."""
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def extension_for(mime: str) -> str:
    """File extension for an image MIME type (jpeg is stored as jpg)."""
    subtype = mime.split("/", 1)[1]
    return "jpg" if subtype == "jpeg" else subtype
