"""Unit tests for ToolServer request handling and lifecycle."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import BaseModel

from toolbridge.client import ToolClient
from toolbridge.errors import TransportError
from toolbridge.protocol import StreamTransport, create_memory_transport_pair
from toolbridge.server import ServerState, ToolServer, format_tool_output
from toolbridge.tools import ToolRegistry


@pytest.fixture
def server(echo_registry):
    return ToolServer("echo-tool-server", "0.1.0", echo_registry)


def _request(method: str, request_id: int = 1, **params) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}


class TestFormatToolOutput:
    """Tests for coercing handler results into displayable text."""

    def test_string_passes_through(self):
        assert format_tool_output("plain text") == "plain text"

    def test_structured_value_is_lossless(self):
        value = {"users": [{"id": 1, "name": "Ada"}], "count": 1, "ok": True, "none": None}
        assert json.loads(format_tool_output(value)) == value

    def test_list_value(self):
        assert json.loads(format_tool_output([1, 2.5, "three"])) == [1, 2.5, "three"]

    def test_pydantic_model(self):
        class Point(BaseModel):
            x: int
            y: int

        assert json.loads(format_tool_output(Point(x=1, y=2))) == {"x": 1, "y": 2}


class TestHandleMessage:
    """Tests for answering individual requests."""

    @pytest.mark.asyncio
    async def test_initialize(self, server):
        response = await server.handle_message(_request("initialize"))

        assert response.id == 1
        assert response.result["server_info"] == {
            "name": "echo-tool-server",
            "version": "0.1.0",
        }
        assert response.result["capabilities"] == {"tools": {}}

    @pytest.mark.asyncio
    async def test_list_tools(self, server):
        response = await server.handle_message(_request("list_tools"))

        tools = response.result["tools"]
        assert [tool["name"] for tool in tools] == ["echo", "add", "raise_error"]
        assert set(tools[0]) == {"name", "description", "input_schema"}

    @pytest.mark.asyncio
    async def test_call_tool_text_result(self, server):
        response = await server.handle_message(
            _request("call_tool", name="echo", arguments={"msg": "hi"})
        )

        assert response.result == {
            "content": [{"type": "text", "text": "hi"}],
            "is_error": False,
        }

    @pytest.mark.asyncio
    async def test_call_tool_structured_result(self, server):
        response = await server.handle_message(
            _request("call_tool", name="add", arguments={"a": 2, "b": 3})
        )

        text = response.result["content"][0]["text"]
        assert json.loads(text) == {"a": 2.0, "b": 3.0, "sum": 5.0}

    @pytest.mark.asyncio
    async def test_call_tool_handler_failure_is_content(self, server):
        response = await server.handle_message(
            _request("call_tool", name="raise_error", arguments={"message": "boom"})
        )

        assert response.error is None
        assert response.result["is_error"] is True
        assert response.result["content"][0]["text"] == "Error: boom"

    @pytest.mark.asyncio
    async def test_call_unknown_tool_is_content(self, server):
        response = await server.handle_message(
            _request("call_tool", name="nope", arguments={})
        )

        assert response.error is None
        assert response.result["is_error"] is True
        assert response.result["content"][0]["text"] == "Error: Unknown tool: nope"

    @pytest.mark.asyncio
    async def test_call_tool_invalid_arguments_is_content(self, server):
        response = await server.handle_message(
            _request("call_tool", name="echo", arguments={"message": "wrong key"})
        )

        assert response.result["is_error"] is True
        assert response.result["content"][0]["text"].startswith("Error: Invalid arguments")

    @pytest.mark.asyncio
    async def test_call_tool_without_name(self, server):
        response = await server.handle_message(_request("call_tool", arguments={}))

        assert response.result is None
        assert response.error.code == -32602

    @pytest.mark.asyncio
    async def test_unknown_method(self, server):
        response = await server.handle_message(_request("delete_everything", request_id=7))

        assert response.id == 7
        assert response.error.code == -32601

    @pytest.mark.asyncio
    async def test_invalid_request(self, server):
        response = await server.handle_message({"id": 3, "params": {}})

        assert response.id == 3
        assert response.error.code == -32600

    @pytest.mark.asyncio
    async def test_invalid_request_wire_form_keeps_null_id(self, server):
        response = await server.handle_message({"method": "list_tools"})

        wire = response.to_wire()
        assert wire["id"] is None
        assert "result" not in wire
        assert wire["error"]["code"] == -32600


class TestLifecycle:
    """Tests for server state transitions."""

    def test_registry_frozen_on_construction(self, server, echo_registry):
        assert server.state is ServerState.IDLE
        assert echo_registry.frozen

    @pytest.mark.asyncio
    async def test_serve_until_peer_closes(self, server):
        client_side, server_side = create_memory_transport_pair()
        task = asyncio.create_task(server.serve(server_side))

        await client_side.send(_request("list_tools"))
        response = await client_side.receive()
        assert server.state is ServerState.SERVING
        assert response["id"] == 1

        await client_side.close()
        await asyncio.wait_for(task, timeout=5.0)

        assert server.state is ServerState.CLOSED

    @pytest.mark.asyncio
    async def test_cannot_serve_twice(self, server):
        client_side, server_side = create_memory_transport_pair()
        await client_side.close()
        await server.serve(server_side)

        with pytest.raises(RuntimeError, match="cannot serve"):
            await server.serve(create_memory_transport_pair()[1])

    @pytest.mark.asyncio
    async def test_malformed_frame_terminates_connection(self, server):
        reader = asyncio.StreamReader()
        reader.feed_data(b"this is not json\n")
        reader.feed_eof()
        writer = MagicMock()
        writer.wait_closed = AsyncMock()

        with pytest.raises(TransportError):
            await server.serve(StreamTransport(reader, writer))

        assert server.state is ServerState.CLOSED
        writer.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_shutdown_is_idempotent(self, server):
        client_side, server_side = create_memory_transport_pair()
        task = asyncio.create_task(server.serve(server_side))
        await asyncio.sleep(0)

        await server.shutdown()
        await server.shutdown()
        await asyncio.wait_for(task, timeout=5.0)

        assert server.state is ServerState.CLOSED
        assert await client_side.receive() is None


class TestUnserializableResults:
    """Tests for handler values that cannot be rendered as text."""

    @pytest.fixture
    def odd_registry(self):
        registry = ToolRegistry()

        @registry.tool(name="tuple_keys", description="Return a dict keyed by tuples")
        def tuple_keys(arguments):
            return {(1, 2): "x"}

        @registry.tool(name="circular", description="Return a self-referencing list")
        def circular(arguments):
            value = []
            value.append(value)
            return value

        @registry.tool(name="ok", description="Return plain text")
        def ok(arguments):
            return "still here"

        return registry

    @pytest.mark.asyncio
    async def test_unserializable_result_is_content(self, odd_registry):
        server = ToolServer("odd-tool-server", "0.1.0", odd_registry)

        result = await server.call_tool("circular", {})

        assert result.is_error is True
        assert result.text.startswith("Error: Tool returned an unserializable result")

    @pytest.mark.asyncio
    async def test_connection_survives_unserializable_result(self, odd_registry):
        server = ToolServer("odd-tool-server", "0.1.0", odd_registry)
        client_side, server_side = create_memory_transport_pair()
        task = asyncio.create_task(server.serve(server_side))

        client = ToolClient(handshake_timeout=5.0)
        await client.connect_transport(client_side)

        bad = await client.call_tool("tuple_keys")
        good = await client.call_tool("ok")

        assert bad.is_error is True
        assert bad.text.startswith("Error:")
        assert good.is_error is False
        assert good.text == "still here"
        assert server.state is ServerState.SERVING

        await client.disconnect()
        await asyncio.wait_for(task, timeout=5.0)
