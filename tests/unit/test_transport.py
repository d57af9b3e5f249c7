"""Unit tests for frame encoding and the transport implementations."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from toolbridge.errors import TransportError
from toolbridge.protocol import (
    StreamTransport,
    create_memory_transport_pair,
    decode_frame,
    encode_frame,
)


def _reader_with(data: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


class TestFraming:
    """Tests for newline-delimited JSON framing."""

    def test_encode_frame_is_single_line(self):
        frame = encode_frame({"text": "line one\nline two"})
        assert frame.endswith(b"\n")
        assert frame.count(b"\n") == 1

    def test_decode_frame(self):
        assert decode_frame(b'{"id": 1, "method": "list_tools"}\n') == {
            "id": 1,
            "method": "list_tools",
        }

    def test_decode_invalid_json(self):
        with pytest.raises(TransportError, match="Malformed frame"):
            decode_frame(b"not json\n")

    def test_decode_non_object(self):
        with pytest.raises(TransportError, match="expected a JSON object"):
            decode_frame(b"[1, 2, 3]\n")

    def test_encode_unserializable(self):
        with pytest.raises(TransportError, match="not JSON-serializable"):
            encode_frame({"value": object()})

    def test_non_ascii_survives(self):
        message = {"text": "Kullanıcı adı ✓"}
        assert decode_frame(encode_frame(message)) == message


class TestStreamTransport:
    """Tests for StreamTransport over asyncio streams."""

    @pytest.mark.asyncio
    async def test_receive_messages_then_eof(self):
        reader = _reader_with(b'{"id": 1}\n{"id": 2}\n')
        transport = StreamTransport(reader, MagicMock())

        assert await transport.receive() == {"id": 1}
        assert await transport.receive() == {"id": 2}
        assert await transport.receive() is None

    @pytest.mark.asyncio
    async def test_partial_frame_at_eof(self):
        transport = StreamTransport(_reader_with(b'{"id": 1'), MagicMock())

        with pytest.raises(TransportError, match="middle of a frame"):
            await transport.receive()

    @pytest.mark.asyncio
    async def test_malformed_frame(self):
        transport = StreamTransport(_reader_with(b"garbage\n"), MagicMock())

        with pytest.raises(TransportError):
            await transport.receive()

    @pytest.mark.asyncio
    async def test_frame_over_limit(self):
        reader = asyncio.StreamReader(limit=16)
        reader.feed_data(b'{"text": "' + b"x" * 64 + b'"}\n')
        reader.feed_eof()
        transport = StreamTransport(reader, MagicMock())

        with pytest.raises(TransportError, match="limit"):
            await transport.receive()

    @pytest.mark.asyncio
    async def test_send_writes_frame(self):
        writer = MagicMock()
        writer.drain = AsyncMock()
        transport = StreamTransport(_reader_with(b""), writer)

        await transport.send({"id": 1})

        writer.write.assert_called_once_with(b'{"id":1}\n')

    @pytest.mark.asyncio
    async def test_send_broken_pipe(self):
        writer = MagicMock()
        writer.write.side_effect = BrokenPipeError("pipe closed")
        transport = StreamTransport(_reader_with(b""), writer)

        with pytest.raises(TransportError, match="Failed to write"):
            await transport.send({"id": 1})


class TestMemoryTransport:
    """Tests for the in-memory transport pair."""

    @pytest.mark.asyncio
    async def test_messages_cross_the_pair(self):
        client, server = create_memory_transport_pair()

        await client.send({"id": 1, "method": "list_tools"})
        assert await server.receive() == {"id": 1, "method": "list_tools"}

        await server.send({"id": 1, "result": {}})
        assert await client.receive() == {"id": 1, "result": {}}

    @pytest.mark.asyncio
    async def test_close_signals_end_of_stream_to_peer(self):
        client, server = create_memory_transport_pair()

        await client.close()

        assert await server.receive() is None

    @pytest.mark.asyncio
    async def test_send_after_close(self):
        client, _ = create_memory_transport_pair()
        await client.close()

        with pytest.raises(TransportError, match="closed"):
            await client.send({"id": 1})

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        client, server = create_memory_transport_pair()

        await client.close()
        await client.close()

        assert await server.receive() is None
        assert await client.receive() is None
