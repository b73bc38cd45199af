"""Encoding of acquired images into the data-URL payload carried by the queue."""

import base64
import mimetypes
from pathlib import Path


def encode_image(data: bytes, mime: str) -> str:
    """Encode raw image bytes as ``data:<mime>;base64,<body>``.

    Raises:
        ValueError: If the MIME type is not an image type or data is empty
    """
    if not mime.startswith("image/"):
        raise ValueError(f"Not an image type: {mime}")
    if not data:
        raise ValueError("Image data is empty")
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def encode_file(path: Path) -> str:
    """Read an image file and encode it as a data URL.

    The MIME type is guessed from the file extension.

    Raises:
        ValueError: If the file is not recognised as an image
        OSError: If the file cannot be read
    """
    mime, _ = mimetypes.guess_type(str(path))
    if mime is None or not mime.startswith("image/"):
        raise ValueError(f"Choose an image file (got {mime or 'unknown type'}): {path}")
    return encode_image(Path(path).read_bytes(), mime)
