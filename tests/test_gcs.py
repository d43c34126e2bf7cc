import asyncio
import contextlib
import io
import socket

import pytest
from PIL import Image

from uavlink.gcs import ConsoleHandler, main, run_ground_station
from uavlink.protocol import Telemetry, encode_image


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def _connect(port, timeout=2.0):
    async def attempt():
        while True:
            try:
                return await asyncio.open_connection("127.0.0.1", port)
            except OSError:
                await asyncio.sleep(0.02)

    return await asyncio.wait_for(attempt(), timeout)


async def _until(predicate, timeout=2.0):
    async def poll():
        while not predicate():
            await asyncio.sleep(0.02)

    await asyncio.wait_for(poll(), timeout)


def test_handler_prints_and_records_telemetry():
    out = io.StringIO()
    handler = ConsoleHandler(out)
    handler.on_telemetry(1.5, 2.5, 3.5)
    assert handler.position == Telemetry(1.5, 2.5, 3.5)
    text = out.getvalue()
    assert "Telemetry:" in text
    assert "1.500000" in text


def test_handler_reports_connections():
    out = io.StringIO()
    handler = ConsoleHandler(out)
    handler.on_client_connected()
    handler.on_client_disconnected()
    lines = out.getvalue().splitlines()
    assert lines == ["New client connected", "Client disconnected"]


def test_handler_saves_images(tmp_path):
    out = io.StringIO()
    handler = ConsoleHandler(out, tmp_path / "images")
    handler.on_image(Image.new("RGB", (8, 8), "blue"))
    assert handler.images_received == 1
    assert len(handler.saved_images) == 1
    path = handler.saved_images[0]
    with Image.open(path) as saved:
        assert saved.size == (8, 8)
    assert str(path) in out.getvalue()


def test_handler_without_directory_keeps_nothing():
    out = io.StringIO()
    handler = ConsoleHandler(out)
    handler.on_image(Image.new("RGB", (8, 8)))
    assert handler.saved_images == []
    assert "8x8" in out.getvalue()


@pytest.mark.asyncio
async def test_ground_station_receives_telemetry_and_image(tmp_path, capsys):
    port = _free_port()
    task = asyncio.create_task(run_ground_station(port, "127.0.0.1", tmp_path))
    output = []

    def seen(fragment):
        output.append(capsys.readouterr().out)
        return fragment in "".join(output)

    try:
        buffer = io.BytesIO()
        Image.new("RGB", (8, 8), "green").save(buffer, "JPEG")
        _, writer = await _connect(port)
        writer.write(encode_image(buffer.getvalue()))
        await writer.drain()
        await _until(lambda: list(tmp_path.glob("*.jpg")))
        writer.close()
        await writer.wait_closed()

        _, writer = await _connect(port)
        writer.write(b"Latitude: 1.5, Longitude: 2.5, Altitude: 3.5")
        await writer.drain()
        await _until(lambda: seen("Telemetry:"))
        writer.close()
        await writer.wait_closed()
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    text = "".join(output)
    assert "Image received: 8x8" in text
    assert "latitude=1.500000" in text
    (saved,) = tmp_path.glob("*.jpg")
    with Image.open(saved) as image:
        assert image.size == (8, 8)


def test_main_fails_when_port_is_taken(capsys):
    with socket.socket() as busy:
        busy.bind(("127.0.0.1", 0))
        busy.listen()
        port = busy.getsockname()[1]
        assert main([str(port), "--host", "127.0.0.1"]) == 1
    assert "Server could not start" in capsys.readouterr().err