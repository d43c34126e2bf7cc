"""TCP server run by the ground station to receive telemetry and images."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field

from PIL import Image

from .protocol import (
    TELEMETRY_PREFIX,
    FrameAssembler,
    ImageDecodeError,
    decode_jpeg,
    parse_telemetry,
)

log = logging.getLogger(__name__)

WELCOME_MESSAGE = b"Welcome to this Server"
_READ_SIZE = 1 << 16


class ServerHandler:
    """Receives server events; override the methods of interest."""

    def on_client_connected(self) -> None:
        """Called when a client connects."""

    def on_client_disconnected(self) -> None:
        """Called when a client disconnects."""

    def on_data(self, text: str) -> None:
        """Called with each chunk of telemetry text received."""

    def on_telemetry(self, latitude: float, longitude: float, altitude: float) -> None:
        """Called with each telemetry report that parses."""

    def on_image(self, image: Image.Image) -> None:
        """Called with each image received."""


@dataclass(eq=False)
class _Client:
    writer: asyncio.StreamWriter
    assembler: FrameAssembler = field(default_factory=FrameAssembler)


class GroundStationServer:
    """Accepts simulator connections and dispatches what they send."""

    def __init__(
        self,
        port: int,
        host: str | None = None,
        handler: ServerHandler | None = None,
    ) -> None:
        self._requested_port = port
        self._host = host
        self._handler = handler if handler is not None else ServerHandler()
        self._server: asyncio.AbstractServer | None = None
        self._clients: list[_Client] = []
        self._is_started = False

    @property
    def port(self) -> int:
        """The port actually listened on, or the requested one if not started."""
        if self._server is not None and self._server.sockets:
            return self._server.sockets[0].getsockname()[1]
        return self._requested_port

    async def start(self) -> bool:
        """Start listening; return whether it succeeded."""
        try:
            self._server = await asyncio.start_server(
                self._serve, self._host, self._requested_port
            )
        except OSError as exc:
            log.warning("Server could not start: %s", exc)
            self._is_started = False
            return False
        log.info("Server started on port %d", self.port)
        self._is_started = True
        return True

    async def close(self) -> None:
        """Stop listening and drop every client."""
        server, self._server = self._server, None
        self._is_started = False
        if server is None:
            return
        server.close()
        for client in list(self._clients):
            client.writer.close()
        await server.wait_closed()

    def is_started(self) -> bool:
        """Whether the server is listening."""
        return self._is_started

    def send_to_all(self, message: str) -> None:
        """Send a text message to every connected client."""
        data = message.encode("utf-8")
        for client in self._clients:
            client.writer.write(data)

    async def __aenter__(self) -> GroundStationServer:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _serve(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        client = _Client(writer)
        self._clients.append(client)
        log.debug("A client connected to server")
        writer.write(WELCOME_MESSAGE)
        self._handler.on_client_connected()
        try:
            while True:
                chunk = await reader.read(_READ_SIZE)
                if not chunk:
                    break
                self._handle_chunk(client, chunk)
        except ConnectionError:
            pass
        finally:
            self._clients.remove(client)
            writer.close()
            with contextlib.suppress(ConnectionError):
                await writer.wait_closed()
            self._handler.on_client_disconnected()

    def _handle_chunk(self, client: _Client, chunk: bytes) -> None:
        text = chunk.decode("utf-8", errors="replace")
        if text.startswith(TELEMETRY_PREFIX):
            self._handler.on_data(text)
            telemetry = parse_telemetry(text)
            if telemetry is not None:
                self._handler.on_telemetry(
                    telemetry.latitude, telemetry.longitude, telemetry.altitude
                )
            return
        payload = client.assembler.feed(chunk)
        if payload is None:
            return
        try:
            image = decode_jpeg(payload)
        except ImageDecodeError as exc:
            log.warning("Failed to load image, size %d: %s", len(payload), exc)
            return
        self._handler.on_image(image)