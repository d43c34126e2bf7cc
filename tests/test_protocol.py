import io
import struct

import pytest
from PIL import Image

from uavlink.protocol import (
    IMAGE_HEADER,
    TEXT_HEADER,
    FrameAssembler,
    ImageDecodeError,
    Telemetry,
    decode_jpeg,
    encode_frame,
    encode_image,
    encode_text_message,
    parse_telemetry,
)


def _jpeg_bytes(size=(16, 8)):
    buffer = io.BytesIO()
    Image.new("RGB", size, (200, 10, 10)).save(buffer, "JPEG")
    return buffer.getvalue()


def test_telemetry_format_uses_fixed_precision():
    text = Telemetry(28.6139, 77.2090, 300.0).format()
    assert text == "Latitude: 28.613900, Longitude: 77.209000, Altitude: 300.00"


def test_telemetry_round_trip():
    original = Telemetry(-12.5, 130.25, 42.75)
    parsed = parse_telemetry(original.format())
    assert parsed == original


@pytest.mark.parametrize(
    "text",
    [
        "Longitude: 1, Latitude: 2, Altitude: 3",
        "Latitude: 1, Longitude: 2",
        "Latitude: 1, Longitude: 2, Altitude: 3, Speed: 4",
        "Latitude: x, Longitude: 2, Altitude: 3",
        "Latitude: 1, Longitude: 2, Altitude:3",
        "Latitude: 1_0, Longitude: 2, Altitude: 3",
        "Latitude: 1e40, Longitude: 2, Altitude: 3",
    ],
)
def test_parse_telemetry_rejects_invalid(text):
    assert parse_telemetry(text) is None


def test_encode_frame_layout():
    payload = b"abcdef"
    frame = encode_frame(IMAGE_HEADER, payload)
    assert frame[:4] == bytes.fromhex("a1b2c3d4")
    assert struct.unpack(">i", frame[4:8])[0] == len(payload)
    assert frame[8:] == payload


@pytest.mark.parametrize("header", [-1, 0x1_0000_0000])
def test_encode_frame_rejects_bad_header(header):
    with pytest.raises(ValueError):
        encode_frame(header, b"x")


def test_encode_text_message_trims_and_uses_text_header():
    frame = encode_text_message("  hello  ")
    assert frame[:4] == bytes.fromhex("b1b2b3b4")
    assert struct.unpack(">I", frame[:4])[0] == TEXT_HEADER
    assert struct.unpack(">i", frame[4:8])[0] == len("hello")
    assert frame[8:] == b"hello"


def test_encode_text_message_counts_utf16_units():
    frame = encode_text_message("\U0001d11e")
    assert struct.unpack(">i", frame[4:8])[0] == 2
    assert frame[8:] == "\U0001d11e".encode("utf-8")


def test_encode_image_from_bytes_and_image():
    data = _jpeg_bytes()
    assert encode_image(data) == encode_frame(IMAGE_HEADER, data)
    frame = encode_image(Image.new("RGBA", (10, 6)))
    assert frame[:4] == struct.pack(">I", IMAGE_HEADER)
    assert decode_jpeg(frame[8:]).size == (10, 6)


def test_decode_jpeg_round_trip():
    image = decode_jpeg(_jpeg_bytes((16, 8)))
    assert image.size == (16, 8)
    assert image.format == "JPEG"


def test_decode_jpeg_rejects_png():
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4)).save(buffer, "PNG")
    with pytest.raises(ImageDecodeError):
        decode_jpeg(buffer.getvalue())


@pytest.mark.parametrize("data", [b"", b"not an image at all"])
def test_decode_jpeg_rejects_garbage(data):
    with pytest.raises(ImageDecodeError):
        decode_jpeg(data)


def test_assembler_returns_complete_payload():
    assembler = FrameAssembler()
    payload = b"payload-bytes"
    assert assembler.feed(encode_frame(IMAGE_HEADER, payload)) == payload
    assert assembler.buffered == b""


def test_assembler_ignores_chunk_without_header():
    assembler = FrameAssembler()
    assert assembler.feed(b"junk data here") is None
    assert assembler.feed(encode_frame(TEXT_HEADER, b"hello")) is None
    assert assembler.buffered == b""


def test_assembler_waits_for_rest_and_drops_headerless_continuation():
    assembler = FrameAssembler()
    frame = encode_frame(IMAGE_HEADER, b"0123456789")
    first, rest = frame[:12], frame[12:]
    assert assembler.feed(first) is None
    assert assembler.buffered == first
    assert assembler.feed(rest) is None
    assert assembler.buffered == first


def test_assembler_discards_trailing_bytes():
    assembler = FrameAssembler()
    one = encode_frame(IMAGE_HEADER, b"first")
    two = encode_frame(IMAGE_HEADER, b"second")
    assert assembler.feed(one + two) == b"first"
    assert assembler.buffered == b""


def test_assembler_non_positive_size_keeps_waiting():
    assembler = FrameAssembler()
    chunk = struct.pack(">Ii", IMAGE_HEADER, 0)
    assert assembler.feed(chunk) is None
    assert assembler.buffered == chunk
    assembler.clear()
    assert assembler.buffered == b""