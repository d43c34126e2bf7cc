# uavlink

uavlink connects a simulated UAV to a ground control station over plain TCP.
Both ends are built on asyncio.

- The **ground station** (`uavlink-gcs`) listens for clients and sends each
  one the greeting `Welcome to this Server`. It prints the telemetry lines that
  come in, and it decodes JPEG image frames. It can save those images to a
  directory.
- The **simulator** (`uavlink-simulator`) connects to a ground station and
  sends a randomly drifting position at a fixed interval. After it connects it
  can also send a text message frame and an image frame, once each.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Wire format

Telemetry is sent as text with no line terminator:

```
Latitude: 28.613900, Longitude: 77.209000, Altitude: 300.00
```

Latitude and longitude have six decimals and altitude has two.
`parse_telemetry` accepts text that starts with `Latitude:`, contains
`Longitude:` and `Altitude:`, and splits on `", "` into exactly three numeric
fields. For any other text it returns `None`.

Binary frames start with a big-endian unsigned 32-bit header and a big-endian
signed 32-bit payload size, followed by the payload:

| Header       | Payload            | Built by              |
|--------------|--------------------|-----------------------|
| `0xA1B2C3D4` | JPEG image bytes   | `encode_image`        |
| `0xB1B2B3B4` | UTF-8 text message | `encode_text_message` |

`encode_text_message` strips surrounding whitespace from the message. The
payload is the UTF-8 encoding, but the size field counts UTF-16 code units. For
non-ASCII text these two numbers differ.

## Command line

Start the ground station on a port:

```
uavlink-gcs 5000
uavlink-gcs 5000 --host 127.0.0.1 --image-dir received
```

It prints connects, disconnects, every telemetry line, each parsed position and
the size of each image. When `--image-dir` is given, it saves each image as
`image_0001.jpg`, `image_0002.jpg`, and so on. Stop it with Ctrl+C.

Start the simulator against it:

```
uavlink-simulator 127.0.0.1 5000
uavlink-simulator 127.0.0.1 5000 --interval 0.5 --count 10 --message "hello" --image photo.jpg
```

The simulator has these options:

| Option       | Meaning                                         | Default   |
|--------------|-------------------------------------------------|-----------|
| `--interval` | Seconds between telemetry reports               | 2         |
| `--count`    | Number of reports to send                       | unlimited |
| `--message`  | Text message to send once, as a text frame      | none      |
| `--image`    | Image file to re-encode as JPEG and send once   | none      |

The position starts at latitude 28.6139, longitude 77.2090 and altitude 300.0.
The simulator prints connection state changes and anything the server sends
back. If it cannot connect, it exits with status 1.

## Library use

```python
from uavlink.protocol import (
    FrameAssembler, Telemetry, decode_jpeg, encode_image, parse_telemetry,
)

line = Telemetry(28.6139, 77.2090, 300.0).format()
print(parse_telemetry(line))

assembler = FrameAssembler()
payload = assembler.feed(encode_image(jpeg_bytes))  # JPEG bytes, or None
if payload is not None:
    image = decode_jpeg(payload)                     # a Pillow image
```

`encode_image` accepts raw JPEG bytes or a Pillow `Image`. Images are converted
to RGB when their mode cannot be saved as JPEG. `decode_jpeg` raises
`ImageDecodeError`, a `ValueError`, when the data is not a JPEG image.

- `uavlink.server.GroundStationServer(port, host=None, handler=None)` is the
  asyncio server. It has `await start()`, which returns whether listening
  succeeded, and `await close()`. It also has `is_started()`,
  `send_to_all(message)` and a `port` property. It can be used with
  `async with`. Its events go to a `ServerHandler` subclass:
  - `on_client_connected`
  - `on_client_disconnected`
  - `on_data`
  - `on_telemetry`
  - `on_image`
- `uavlink.client.DeviceController(handler=None)` is the asyncio client. It has
  `await connect_to_device(ip, port)`, `await disconnect()`, `send(data)` for
  text or bytes, `await flush()`, `is_connected()` and `state()`. `state()`
  returns a `SocketState`. Its events go to a `ControllerHandler`, which by
  default records them in its `events` list.
- `uavlink.simulator.TelemetrySimulator(start=None, rng=None)` yields the
  random-walk position from `step()`. `address_state(text)` classifies an
  address string: `"1"` for IPv4, `"0"` for anything else, and `""` for the
  empty mask `...`.
- `uavlink.simulator.run_simulator(...)` and
  `uavlink.gcs.run_ground_station(...)` are the coroutines behind the two
  commands.

## Limitations

- Both ends are console programs. There is no graphical window, map view or
  image viewer. Images are only reported and, optionally, written to disk.
- The ground station ignores text message frames (`0xB1B2B3B4`). It does not
  print them.
- Image reassembly is limited. `FrameAssembler` only takes in a read that
  itself begins with the image header. A frame whose remainder arrives in
  separate reads, without that header at the start of each, is never
  completed. In practice an image must arrive in a single read.
- Telemetry lines have no terminator, so each read is treated as one line.
  If several reports arrive in one read, the combined text is printed but not
  parsed as a position.