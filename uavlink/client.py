"""TCP client used by the UAV simulator to talk to the ground station."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import IntEnum
from typing import Any

log = logging.getLogger(__name__)

_READ_SIZE = 1 << 16


class SocketState(IntEnum):
    """Lifecycle states of the controller's connection."""

    UNCONNECTED = 0
    HOST_LOOKUP = 1
    CONNECTING = 2
    CONNECTED = 3
    BOUND = 4
    LISTENING = 5
    CLOSING = 6


class ControllerHandler:
    """Receives controller events and records them in order.

    Subclasses override the methods of interest; the defaults append
    ``(event, value)`` pairs to :attr:`events`.
    """

    @property
    def events(self) -> list[tuple[str, Any]]:
        """Events seen so far, oldest first."""
        return self.__dict__.setdefault("_events", [])

    def on_connected(self) -> None:
        """Called once the connection is established."""
        self.events.append(("connected", None))

    def on_disconnected(self) -> None:
        """Called once the connection is gone."""
        self.events.append(("disconnected", None))

    def on_state_changed(self, state: SocketState) -> None:
        """Called on every change of connection state."""
        self.events.append(("state", state))

    def on_error(self, error: OSError) -> None:
        """Called when connecting or reading fails."""
        self.events.append(("error", error))

    def on_data(self, data: bytes) -> None:
        """Called with each chunk of data received."""
        self.events.append(("data", data))


class DeviceController:
    """A single outgoing connection with event callbacks."""

    def __init__(self, handler: ControllerHandler | None = None) -> None:
        self._handler = handler if handler is not None else ControllerHandler()
        self._state = SocketState.UNCONNECTED
        self._writer: asyncio.StreamWriter | None = None
        self._task: asyncio.Task[None] | None = None
        self._ip = ""
        self._port = 0

    def _set_state(self, state: SocketState) -> None:
        if state is self._state:
            return
        self._state = state
        self._handler.on_state_changed(state)

    async def connect_to_device(self, ip: str, port: int) -> bool:
        """Connect to ``ip:port``; return whether the connection is up.

        Asking again for the address already connected to does nothing;
        asking for another address drops the current connection first.
        """
        if self._state is not SocketState.UNCONNECTED:
            if ip == self._ip and port == self._port:
                return self.is_connected()
            await self.disconnect()
        self._ip, self._port = ip, port
        self._set_state(SocketState.HOST_LOOKUP)
        self._set_state(SocketState.CONNECTING)
        try:
            reader, writer = await asyncio.open_connection(ip, port)
        except OSError as exc:
            log.debug("Connection to %s:%d failed: %s", ip, port, exc)
            self._handler.on_error(exc)
            self._set_state(SocketState.UNCONNECTED)
            return False
        self._writer = writer
        self._set_state(SocketState.CONNECTED)
        self._handler.on_connected()
        self._task = asyncio.create_task(self._read_loop(reader))
        return True

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        try:
            while True:
                data = await reader.read(_READ_SIZE)
                if not data:
                    break
                self._handler.on_data(data)
        except ConnectionError as exc:
            self._handler.on_error(exc)
        self._teardown()

    def _teardown(self) -> None:
        writer, self._writer = self._writer, None
        if writer is None:
            return
        self._set_state(SocketState.CLOSING)
        writer.close()
        self._set_state(SocketState.UNCONNECTED)
        self._handler.on_disconnected()

    async def disconnect(self) -> None:
        """Close the connection if there is one."""
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        writer = self._writer
        self._teardown()
        if writer is not None:
            with contextlib.suppress(ConnectionError):
                await writer.wait_closed()

    def is_connected(self) -> bool:
        """Whether the connection is established."""
        return self._state is SocketState.CONNECTED

    def state(self) -> SocketState:
        """The current connection state."""
        return self._state

    def send(self, data: str | bytes) -> bool:
        """Send text (as UTF-8) or bytes; return False when not connected."""
        if self._writer is None or not self.is_connected():
            return False
        payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        log.debug("Sending %d bytes, first bytes: %s", len(payload), payload[:16].hex())
        self._writer.write(payload)
        return True

    async def flush(self) -> None:
        """Wait until buffered outgoing data has been handed to the network."""
        if self._writer is not None:
            with contextlib.suppress(ConnectionError):
                await self._writer.drain()