"""Framed transports for the tool protocol.

Messages are JSON objects framed one per line (newline-delimited JSON). A
transport moves such objects across one duplex stream and knows nothing about
their meaning. A malformed frame or a stream that closes in the middle of a
frame raises TransportError; no attempt is made to resynchronize.
"""

import asyncio
import json
import logging
import sys
from typing import Any, Protocol

from toolbridge.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_FRAME_LIMIT = 16 * 1024 * 1024


def encode_frame(message: dict[str, Any]) -> bytes:
    """Encode a message as a single newline-terminated JSON line.

    Args:
        message: JSON-serializable message object

    Returns:
        bytes: UTF-8 encoded frame including the trailing newline

    Raises:
        TransportError: If the message cannot be serialized
    """
    try:
        line = json.dumps(message, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise TransportError(f"Message is not JSON-serializable: {e}") from e
    return line.encode("utf-8") + b"\n"


def decode_frame(frame: bytes) -> dict[str, Any]:
    """Decode one frame into a message object.

    Args:
        frame: A single line, with or without its trailing newline

    Returns:
        dict: The decoded message

    Raises:
        TransportError: If the frame is not valid UTF-8 JSON or not an object
    """
    try:
        message = json.loads(frame.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise TransportError(f"Malformed frame: {e}") from e

    if not isinstance(message, dict):
        raise TransportError(
            f"Malformed frame: expected a JSON object, got {type(message).__name__}"
        )
    return message


class Transport(Protocol):
    """A bidirectional, message-preserving channel to one peer."""

    async def send(self, message: dict[str, Any]) -> None:
        """Send one message to the peer."""
        ...

    async def receive(self) -> dict[str, Any] | None:
        """Receive the next message, or None once the peer closed the stream."""
        ...

    async def close(self) -> None:
        """Release the underlying stream. Safe to call more than once."""
        ...


class StreamTransport:
    """Transport over an asyncio StreamReader/StreamWriter pair.

    Used for child process pipes, the current process's stdio and sockets.

    Attributes:
        reader: Stream the peer's frames are read from
        writer: Stream our frames are written to
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self._closed = False

    async def send(self, message: dict[str, Any]) -> None:
        if self._closed:
            raise TransportError("Transport is closed")

        frame = encode_frame(message)
        try:
            self.writer.write(frame)
            await self.writer.drain()
        except (ConnectionError, OSError) as e:
            raise TransportError(f"Failed to write frame: {e}") from e
        logger.debug(f"Sent frame ({len(frame)} bytes)")

    async def receive(self) -> dict[str, Any] | None:
        if self._closed:
            return None

        try:
            line = await self.reader.readline()
        except (asyncio.LimitOverrunError, ValueError) as e:
            raise TransportError(f"Frame exceeds the stream limit: {e}") from e
        except (ConnectionError, OSError) as e:
            raise TransportError(f"Failed to read frame: {e}") from e

        if not line:
            logger.debug("Peer closed the stream")
            return None
        if not line.endswith(b"\n"):
            raise TransportError("Stream closed in the middle of a frame")

        logger.debug(f"Received frame ({len(line)} bytes)")
        return decode_frame(line)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError) as e:
            logger.debug(f"Ignoring error while closing stream: {e}")


class MemoryTransport:
    """In-process transport; one end of a pair made by create_memory_transport_pair.

    Frames are still encoded and decoded so that serialization behaves as it
    would over a real stream.
    """

    def __init__(
        self,
        inbound: "asyncio.Queue[bytes | None]",
        outbound: "asyncio.Queue[bytes | None]",
    ) -> None:
        self._inbound = inbound
        self._outbound = outbound
        self._closed = False

    async def send(self, message: dict[str, Any]) -> None:
        if self._closed:
            raise TransportError("Transport is closed")
        await self._outbound.put(encode_frame(message))

    async def receive(self) -> dict[str, Any] | None:
        if self._closed:
            return None

        frame = await self._inbound.get()
        if frame is None:
            return None
        return decode_frame(frame)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        # Wake the peer and any pending receive on this end.
        await self._outbound.put(None)
        await self._inbound.put(None)


def create_memory_transport_pair() -> tuple[MemoryTransport, MemoryTransport]:
    """Create two connected in-memory transports.

    Returns:
        tuple: (client_side, server_side) transports
    """
    client_to_server: asyncio.Queue[bytes | None] = asyncio.Queue()
    server_to_client: asyncio.Queue[bytes | None] = asyncio.Queue()

    client_side = MemoryTransport(inbound=server_to_client, outbound=client_to_server)
    server_side = MemoryTransport(inbound=client_to_server, outbound=server_to_client)
    return client_side, server_side


async def open_stdio_transport(limit: int = DEFAULT_FRAME_LIMIT) -> StreamTransport:
    """Bind a StreamTransport to this process's stdin and stdout.

    Only the protocol may write to stdout afterwards; diagnostics go to stderr.

    Args:
        limit: Maximum frame size in bytes

    Returns:
        StreamTransport: Transport reading stdin and writing stdout
    """
    loop = asyncio.get_running_loop()

    reader = asyncio.StreamReader(limit=limit)
    await loop.connect_read_pipe(
        lambda: asyncio.StreamReaderProtocol(reader), sys.stdin
    )

    # StreamReaderProtocol provides the close waiter StreamWriter.wait_closed needs.
    write_transport, write_protocol = await loop.connect_write_pipe(
        lambda: asyncio.StreamReaderProtocol(asyncio.StreamReader()), sys.stdout
    )
    writer = asyncio.StreamWriter(write_transport, write_protocol, reader, loop)

    logger.debug("Opened stdio transport")
    return StreamTransport(reader, writer)
