"""Wire format shared by the ground station and the UAV simulator.

Binary frames start with a big-endian unsigned 32-bit header followed by a
big-endian signed 32-bit payload size and the payload itself. Telemetry is
sent as plain text of the form
``Latitude: <lat>, Longitude: <lon>, Altitude: <alt>``.
"""

from __future__ import annotations

import io
import math
import struct
from dataclasses import dataclass

from PIL import Image

IMAGE_HEADER = 0xA1B2C3D4
TEXT_HEADER = 0xB1B2B3B4
TELEMETRY_PREFIX = "Latitude:"

_PREFIX = struct.Struct(">Ii")
PREFIX_SIZE = _PREFIX.size

_UINT32_MAX = 0xFFFFFFFF
_INT32_MAX = 0x7FFFFFFF
_FLOAT32_MAX = 3.4028234663852886e38


class ImageDecodeError(ValueError):
    """Raised when a payload cannot be decoded as a JPEG image."""


@dataclass
class Telemetry:
    """A single position report from the vehicle."""

    latitude: float
    longitude: float
    altitude: float

    def format(self) -> str:
        """Render the report in the textual telemetry format."""
        return (
            f"Latitude: {self.latitude:.6f}, "
            f"Longitude: {self.longitude:.6f}, "
            f"Altitude: {self.altitude:.2f}"
        )


def _to_float(text: str) -> float | None:
    if "_" in text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if math.isfinite(value) and abs(value) > _FLOAT32_MAX:
        return None
    return value


def parse_telemetry(text: str) -> Telemetry | None:
    """Parse a telemetry line; return None when it is not a valid report."""
    if not text.startswith(TELEMETRY_PREFIX):
        return None
    if "Longitude:" not in text or "Altitude:" not in text:
        return None
    parts = text.split(", ")
    if len(parts) != 3:
        return None
    values = []
    for part in parts:
        fields = part.split(": ")
        if len(fields) < 2:
            return None
        value = _to_float(fields[1])
        if value is None:
            return None
        values.append(value)
    return Telemetry(*values)


def _prefix(header: int, size: int) -> bytes:
    if not 0 <= header <= _UINT32_MAX:
        raise ValueError(f"header out of range: {header!r}")
    if not 0 <= size <= _INT32_MAX:
        raise ValueError(f"payload size out of range: {size!r}")
    return _PREFIX.pack(header, size)


def encode_frame(header: int, payload: bytes) -> bytes:
    """Build a frame of header, payload length and payload."""
    payload = bytes(payload)
    return _prefix(header, len(payload)) + payload


def encode_text_message(message: str) -> bytes:
    """Build a text frame from a message, trimmed of surrounding whitespace.

    The size field counts UTF-16 code units of the message while the
    payload is its UTF-8 encoding.
    """
    message = message.strip()
    units = len(message.encode("utf-16-le")) // 2
    return _prefix(TEXT_HEADER, units) + message.encode("utf-8")


def encode_image(image_data: bytes | Image.Image) -> bytes:
    """Build an image frame from JPEG bytes or from a Pillow image."""
    if isinstance(image_data, Image.Image):
        image = image_data
        if image.mode not in ("RGB", "L", "CMYK"):
            image = image.convert("RGB")
        buffer = io.BytesIO()
        image.save(buffer, "JPEG")
        image_data = buffer.getvalue()
    return encode_frame(IMAGE_HEADER, image_data)


def decode_jpeg(data: bytes) -> Image.Image:
    """Decode JPEG bytes into a Pillow image."""
    if not data:
        raise ImageDecodeError("empty image data")
    try:
        image = Image.open(io.BytesIO(bytes(data)), formats=["JPEG"])
        image.load()
    except (OSError, SyntaxError, ValueError) as exc:
        raise ImageDecodeError(f"cannot decode JPEG data: {exc}") from exc
    return image


class FrameAssembler:
    """Collects image frames arriving over a stream, one connection each.

    Only chunks that themselves begin with the frame header are taken in.
    Once a whole frame is present its payload is returned and everything
    buffered is discarded.
    """

    def __init__(self, header: int = IMAGE_HEADER) -> None:
        self.header = header
        self._marker = struct.pack(">I", header)
        self._buffer = bytearray()

    @property
    def buffered(self) -> bytes:
        """Bytes held while waiting for the rest of a frame."""
        return bytes(self._buffer)

    def feed(self, data: bytes) -> bytes | None:
        """Take in a chunk; return a complete payload or None."""
        if bytes(data[:4]) != self._marker:
            return None
        self._buffer += data
        if len(self._buffer) < PREFIX_SIZE:
            return None
        header, size = _PREFIX.unpack_from(self._buffer)
        if header != self.header:
            self.clear()
            return None
        if size <= 0 or len(self._buffer) - PREFIX_SIZE < size:
            return None
        payload = bytes(self._buffer[PREFIX_SIZE:PREFIX_SIZE + size])
        self.clear()
        return payload

    def clear(self) -> None:
        """Drop everything buffered."""
        self._buffer.clear()