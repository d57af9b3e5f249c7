"""Pytest configuration and shared fixtures for toolbridge tests.

This module provides common fixtures used across test modules, including a
populated tool registry, an in-memory client/server pair and a scripted
completion endpoint.
"""

import asyncio
from typing import Any, Sequence

import pytest
import pytest_asyncio

from toolbridge.client import ToolClient
from toolbridge.config import ToolBridgeSettings
from toolbridge.conversation import CompletionResponse, Message
from toolbridge.protocol import ToolDescriptor, create_memory_transport_pair
from toolbridge.server import ToolServer
from toolbridge.servers import build_echo_registry


class ScriptedCompletionEndpoint:
    """Completion endpoint returning pre-recorded responses in order.

    Each call records a copy of the messages and tools it received.
    """

    def __init__(self, responses: list[CompletionResponse]) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self, messages: Sequence[Message], tools: Sequence[ToolDescriptor]
    ) -> CompletionResponse:
        self.calls.append({"messages": list(messages), "tools": list(tools)})
        if not self.responses:
            raise AssertionError("Scripted endpoint ran out of responses")
        return self.responses.pop(0)


@pytest.fixture
def test_settings(tmp_path, monkeypatch):
    """Create settings isolated from the environment and any .env file.

    Args:
        tmp_path: Pytest fixture providing a temporary directory.
        monkeypatch: Pytest fixture used to change the working directory.

    Returns:
        ToolBridgeSettings: Settings instance configured for testing.
    """
    monkeypatch.chdir(tmp_path)
    return ToolBridgeSettings(
        ollama_host="http://localhost:11434",
        model="llama3.2:latest",
        handshake_timeout=5.0,
        log_level="DEBUG",
    )


@pytest.fixture
def echo_registry():
    """Create a registry with the echo server's tools."""
    return build_echo_registry()


@pytest_asyncio.fixture
async def memory_client(echo_registry):
    """Create a ToolClient connected to an echo ToolServer in memory.

    Yields:
        tuple: (client, server) with the server running in a background task.
    """
    client_side, server_side = create_memory_transport_pair()
    server = ToolServer("echo-tool-server", "0.1.0", echo_registry)
    serve_task = asyncio.create_task(server.serve(server_side))

    client = ToolClient(handshake_timeout=5.0)
    await client.connect_transport(client_side)

    yield client, server

    await client.disconnect()
    await asyncio.wait_for(serve_task, timeout=5.0)
