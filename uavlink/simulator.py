"""UAV simulator: connects to a ground station and streams telemetry."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import ipaddress
import itertools
import random
import sys
from typing import Protocol, TextIO

from PIL import Image

from .client import ControllerHandler, DeviceController, SocketState
from .protocol import Telemetry, encode_image, encode_text_message

DEFAULT_START = Telemetry(28.6139, 77.2090, 300.0)
DEFAULT_INTERVAL = 2.0
_IMAGE_SETTLE = 0.05


class _RandomSource(Protocol):
    def randrange(self, stop: int) -> int: ...


def address_state(text: str) -> str:
    """Classify an address field: "" for a blank mask, "1" for IPv4, "0" otherwise."""
    if text == "...":
        return ""
    try:
        ipaddress.IPv4Address(text)
    except ValueError:
        return "0"
    return "1"


class TelemetrySimulator:
    """Produces a randomly drifting vehicle position."""

    def __init__(
        self, start: Telemetry | None = None, rng: _RandomSource | None = None
    ) -> None:
        self.position = dataclasses.replace(start if start is not None else DEFAULT_START)
        self._rng = rng if rng is not None else random.Random()

    def step(self) -> Telemetry:
        """Move the position by a small random amount and return a copy of it."""
        self.position.latitude += (self._rng.randrange(100) - 50) * 0.0001
        self.position.longitude += (self._rng.randrange(100) - 50) * 0.0001
        self.position.altitude += (self._rng.randrange(20) - 10) * 0.1
        return dataclasses.replace(self.position)


class _ConsoleHandler(ControllerHandler):
    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def _print(self, line: str) -> None:
        print(line, file=self._stream, flush=True)

    def on_connected(self) -> None:
        self._print("Connected To Device")

    def on_disconnected(self) -> None:
        self._print("Disconnected from Device")

    def on_state_changed(self, state: SocketState) -> None:
        self._print(state.name)

    def on_error(self, error: OSError) -> None:
        self._print(f"{type(error).__name__}: {error}")

    def on_data(self, data: bytes) -> None:
        self._print(data.decode("utf-8", errors="replace"))


async def _send_image(controller: DeviceController, image_path: str, out: _ConsoleHandler) -> None:
    try:
        with Image.open(image_path) as image:
            image.load()
            frame = encode_image(image)
    except OSError:
        out._print(f"Failed to load image: {image_path}")
        return
    controller.send(frame)
    await controller.flush()
    await asyncio.sleep(_IMAGE_SETTLE)
    out._print("Image sent to server.")


async def run_simulator(
    host: str,
    port: int,
    interval: float = DEFAULT_INTERVAL,
    count: int | None = None,
    image_path: str | None = None,
    message: str | None = None,
) -> int:
    """Connect, optionally send a message and an image, then stream telemetry.

    Sends ``count`` telemetry reports, one every ``interval`` seconds, or
    keeps going while connected when ``count`` is None. Returns the number
    of reports sent.
    """
    out = _ConsoleHandler()
    controller = DeviceController(out)
    if not await controller.connect_to_device(host, port):
        raise ConnectionError(f"could not connect to {host}:{port}")
    sent = 0
    try:
        if message is not None:
            controller.send(encode_text_message(message))
            await controller.flush()
        if image_path is not None:
            await _send_image(controller, image_path, out)
        simulator = TelemetrySimulator()
        ticks = itertools.count() if count is None else range(count)
        for _ in ticks:
            await asyncio.sleep(interval)
            if not controller.send(simulator.step().format()):
                break
            await controller.flush()
            sent += 1
    finally:
        await controller.disconnect()
    return sent


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point of the simulator."""
    parser = argparse.ArgumentParser(
        prog="uavlink-simulator",
        description="Stream simulated UAV telemetry to a ground station.",
    )
    parser.add_argument("host", help="ground station address")
    parser.add_argument("port", type=int, help="ground station port")
    parser.add_argument("--interval", type=float, default=DEFAULT_INTERVAL,
                        help="seconds between telemetry reports")
    parser.add_argument("--count", type=int, default=None,
                        help="number of reports to send (default: unlimited)")
    parser.add_argument("--image", dest="image_path", default=None,
                        help="image file to send once after connecting")
    parser.add_argument("--message", default=None,
                        help="text message to send once after connecting")
    args = parser.parse_args(argv)
    try:
        asyncio.run(run_simulator(
            args.host, args.port, args.interval, args.count, args.image_path, args.message
        ))
    except ConnectionError as exc:
        print(exc, file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0