"""Tests for strict data URL parsing."""

import base64

import pytest

from photoqueue_server.payload import Err, Ok, encode_data_url, extension_for, parse_data_url


class TestParseDataUrl:
    """Test the tagged parse result."""

    def test_valid_png(self, png_bytes, png_data_url):
        assert parse_data_url(png_data_url) == Ok(mime="image/png", data=png_bytes)

    def test_decode_then_encode_is_identity(self, png_bytes):
        """Decoding a payload and re-encoding it gives back the same bytes."""
        data_url = encode_data_url("image/webp", png_bytes)
        parsed = parse_data_url(data_url)

        assert isinstance(parsed, Ok)
        assert encode_data_url(parsed.mime, parsed.data) == data_url

    @pytest.mark.parametrize(
        "value",
        [
            None,
            42,
            "",
            "not-an-image",
            "data:text/plain;base64,aGVsbG8=",
            "data:image/png,rawdata",
            "data:image/png;base64,",
            "data:image/png;base64,!!!notbase64!!!",
            "data:image/png;base64,aGVsbG8",
        ],
    )
    def test_rejected_values(self, value):
        result = parse_data_url(value)
        assert isinstance(result, Err)
        assert result.reason

    def test_non_image_reason(self):
        assert parse_data_url("not-an-image") == Err("Expected payload (base64 image data URL).")

    def test_subtypes_with_symbols(self):
        data = base64.b64encode(b"<svg/>").decode()
        assert parse_data_url(f"data:image/svg+xml;base64,{data}") == Ok("image/svg+xml", b"<svg/>")


class TestExtensionFor:
    def test_jpeg_maps_to_jpg(self):
        assert extension_for("image/jpeg") == "jpg"

    def test_other_subtypes_map_to_themselves(self):
        assert extension_for("image/png") == "png"
        assert extension_for("image/webp") == "webp"
