"""Interactive console front end.

Reads one line of user text at a time, runs it through the orchestrator and
prints what the turn emits. Errors are printed and the console keeps
accepting input; only the quit token or end of input stops it.
"""

import asyncio
import json
import logging
import sys
from typing import Callable

from toolbridge.client import ToolClient
from toolbridge.config import ToolBridgeSettings
from toolbridge.conversation import (
    OllamaCompletionEndpoint,
    Orchestrator,
    TextEvent,
    ToolCallEvent,
    ToolResultEvent,
    TurnEvent,
)
from toolbridge.errors import ServerConnectionError, ToolBridgeError
from toolbridge.ollama import OllamaClient

logger = logging.getLogger(__name__)


def render_event(event: TurnEvent) -> str | None:
    """Format a turn event for the console, or None if it prints nothing."""
    if isinstance(event, TextEvent):
        return event.text
    if isinstance(event, ToolCallEvent):
        return f"\nUsing tool: {event.name} {json.dumps(event.arguments, ensure_ascii=False)}"
    if isinstance(event, ToolResultEvent):
        label = "Tool error" if event.is_error else "Tool result"
        return f"{label}: {event.content}"
    return None


class ChatConsole:
    """Line-oriented chat loop around an Orchestrator.

    Attributes:
        orchestrator: Runs each turn
        quit_command: Input that ends the session (case-insensitive)
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        read_line: Callable[[str], str] = input,
        write: Callable[[str], None] = print,
        quit_command: str = "quit",
    ) -> None:
        self.orchestrator = orchestrator
        self.quit_command = quit_command
        self._read_line = read_line
        self._write = write

    async def _prompt(self) -> str | None:
        try:
            return await asyncio.to_thread(self._read_line, "> ")
        except EOFError:
            return None

    async def run(self) -> None:
        """Accept input until the quit token or end of input."""
        self._write(
            f"\nReady! Type your messages (or '{self.quit_command}' to exit):\n"
        )

        while True:
            line = await self._prompt()
            if line is None or line.strip().lower() == self.quit_command.lower():
                return
            if not line.strip():
                continue

            try:
                async for event in self.orchestrator.run_turn(line):
                    rendered = render_event(event)
                    if rendered is not None:
                        self._write(rendered)
            except ToolBridgeError as e:
                logger.error(f"Turn failed: {e}")
                self._write(f"Error: {e}")

            self._write("")


async def run_chat(settings: ToolBridgeSettings, command: str, args: list[str]) -> int:
    """Connect to a tool server and run the interactive chat.

    Args:
        settings: Loaded configuration
        command: Tool server executable
        args: Tool server arguments

    Returns:
        int: Process exit status
    """
    client = ToolClient(
        handshake_timeout=settings.handshake_timeout,
        max_frame_bytes=settings.max_frame_bytes,
    )

    print(f"Connecting to tool server: {command} {' '.join(args)}")
    try:
        tools = await client.connect(command, args)
    except ServerConnectionError as e:
        logger.error(f"Failed to connect to tool server: {e}")
        print(f"Failed to connect to tool server: {e}", file=sys.stderr)
        return 1

    try:
        print("\nAvailable tools:")
        for tool in tools:
            print(f"- {tool.name}: {tool.description}")

        ollama_client = OllamaClient(host=settings.ollama_host, api_key=settings.api_key)
        if not await ollama_client.check_connection():
            print(
                f"Warning: Ollama is not reachable at {settings.ollama_host}; "
                "turns will fail until it is",
                file=sys.stderr,
            )

        endpoint = OllamaCompletionEndpoint(
            client=ollama_client,
            model=settings.model,
            options={"num_predict": settings.max_tokens},
        )
        orchestrator = Orchestrator(
            completion=endpoint,
            tool_caller=client,
            max_tool_rounds=settings.max_tool_rounds,
            system_prompt=settings.system_prompt,
        )

        console = ChatConsole(orchestrator, quit_command=settings.quit_command)
        await console.run()
    finally:
        await client.disconnect()

    return 0
