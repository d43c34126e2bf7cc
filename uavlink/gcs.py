"""Ground control station: listens for the UAV and reports what arrives."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import TextIO

from PIL import Image

from .protocol import Telemetry
from .server import GroundStationServer, ServerHandler


class ConsoleHandler(ServerHandler):
    """Prints server events and optionally saves received images."""

    def __init__(
        self, stream: TextIO | None = None, image_dir: str | Path | None = None
    ) -> None:
        self._stream = stream
        self.image_dir = Path(image_dir) if image_dir is not None else None
        self.position: Telemetry | None = None
        self.saved_images: list[Path] = []
        self.images_received = 0

    def _print(self, line: str) -> None:
        print(line, file=self._stream, flush=True)

    def on_client_connected(self) -> None:
        self._print("New client connected")

    def on_client_disconnected(self) -> None:
        self._print("Client disconnected")

    def on_data(self, text: str) -> None:
        self._print(text)

    def on_telemetry(self, latitude: float, longitude: float, altitude: float) -> None:
        self.position = Telemetry(latitude, longitude, altitude)
        self._print(
            f"Telemetry: latitude={latitude:.6f}, "
            f"longitude={longitude:.6f}, altitude={altitude:.2f}"
        )

    def on_image(self, image: Image.Image) -> None:
        self.images_received += 1
        width, height = image.size
        self._print(f"Image received: {width}x{height}")
        if self.image_dir is None:
            return
        self.image_dir.mkdir(parents=True, exist_ok=True)
        path = self.image_dir / f"image_{self.images_received:04d}.jpg"
        image.save(path, "JPEG")
        self.saved_images.append(path)
        self._print(f"Saved image to {path}")


async def run_ground_station(
    port: int, host: str | None = None, image_dir: str | Path | None = None
) -> None:
    """Serve until cancelled, printing everything received."""
    handler = ConsoleHandler(image_dir=image_dir)
    server = GroundStationServer(port, host, handler)
    if not await server.start():
        raise OSError(f"could not listen on port {port}")
    handler._print(f"Server started on port {server.port}")
    try:
        await asyncio.Event().wait()
    finally:
        await server.close()


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point of the ground station."""
    parser = argparse.ArgumentParser(
        prog="uavlink-gcs",
        description="Receive telemetry and images from a UAV.",
    )
    parser.add_argument("port", type=int, help="port to listen on")
    parser.add_argument("--host", default=None, help="address to listen on (default: all)")
    parser.add_argument("--image-dir", default=None, help="directory to save images into")
    args = parser.parse_args(argv)
    try:
        asyncio.run(run_ground_station(args.port, args.host, args.image_dir))
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(f"Server could not start: {exc}", file=sys.stderr)
        return 1
    return 0