"""Completion endpoint abstraction and its Ollama implementation.

The orchestrator only needs one operation from a completion endpoint: given
the message history and the tool catalogue, return the model's next response
as ordered text and tool-call segments.
"""

import logging
from typing import Any, Protocol, Sequence

import httpx
import ollama

from toolbridge.conversation.types import (
    CompletionResponse,
    Message,
    Segment,
    TextSegment,
    ToolCallSegment,
)
from toolbridge.errors import CompletionError
from toolbridge.ollama.client import OllamaClient
from toolbridge.protocol.messages import ToolDescriptor

logger = logging.getLogger(__name__)


class CompletionEndpoint(Protocol):
    """Anything that can turn a history and a tool catalogue into a response."""

    async def complete(
        self, messages: Sequence[Message], tools: Sequence[ToolDescriptor]
    ) -> CompletionResponse:
        ...


def _convert_messages_to_ollama_format(messages: Sequence[Message]) -> list[dict]:
    """Convert conversation messages to Ollama API format.

    Args:
        messages: List of message objects (UserMessage, SystemMessage, AssistantMessage, ToolMessage)

    Returns:
        List of message dicts in Ollama format: [{"role": "...", "content": "..."}, ...]
    """
    ollama_messages = []

    for msg in messages:
        ollama_msg: dict[str, Any] = {
            "role": msg.role,
            "content": msg.content,
        }

        # Add tool_calls for assistant messages that have them
        if getattr(msg, "tool_calls", None):
            ollama_msg["tool_calls"] = msg.tool_calls

        # Tool results name the tool they answer
        if getattr(msg, "tool_name", None):
            ollama_msg["tool_name"] = msg.tool_name

        ollama_messages.append(ollama_msg)

    return ollama_messages


def _convert_tools_to_ollama_format(tools: Sequence[ToolDescriptor]) -> list[dict]:
    """Convert catalogue descriptors to Ollama function tool definitions."""
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.input_schema,
            },
        }
        for tool in tools
    ]


def _tool_call_from_ollama(raw: Any) -> ToolCallSegment:
    function = raw.get("function", {}) if isinstance(raw, dict) else {}
    arguments = function.get("arguments") or {}
    return ToolCallSegment(name=function.get("name", ""), arguments=dict(arguments))


class OllamaCompletionEndpoint:
    """Completion endpoint backed by an Ollama chat model.

    Attributes:
        client: The OllamaClient used for requests
        model: Model name sent with every request
        options: Model options (e.g., num_predict) sent with every request
    """

    def __init__(
        self,
        client: OllamaClient,
        model: str,
        options: dict[str, Any] | None = None,
    ) -> None:
        self.client = client
        self.model = model
        self.options = options

    async def complete(
        self, messages: Sequence[Message], tools: Sequence[ToolDescriptor]
    ) -> CompletionResponse:
        """Request the next response and split it into segments.

        Streamed content is accumulated into one text segment that precedes
        the tool calls, which is the order Ollama produces them in.

        Raises:
            CompletionError: If the request fails or the stream ends without
                             its completion marker
        """
        content_parts: list[str] = []
        tool_calls: list[ToolCallSegment] = []
        final_chunk = None

        try:
            async for chunk in self.client.chat_stream(
                model=self.model,
                messages=_convert_messages_to_ollama_format(messages),
                tools=_convert_tools_to_ollama_format(tools) or None,
                options=self.options,
            ):
                message = chunk.get("message") or {}
                content = message.get("content") or ""
                if content:
                    content_parts.append(content)

                for raw_call in message.get("tool_calls") or []:
                    tool_calls.append(_tool_call_from_ollama(raw_call))

                if chunk.get("done"):
                    final_chunk = chunk

        except (ollama.ResponseError, ollama.RequestError, httpx.HTTPError, OSError) as e:
            logger.error(f"Ollama completion error: {e}")
            raise CompletionError(f"Failed to get response from Ollama: {e}") from e

        if final_chunk is None:
            raise CompletionError("Stream ended without completion marker")

        segments: list[Segment] = []
        text = "".join(content_parts)
        if text:
            segments.append(TextSegment(text=text))
        segments.extend(tool_calls)

        logger.info(
            f"Completion received: {len(text)} characters, {len(tool_calls)} tool calls"
        )
        return CompletionResponse(
            segments=segments,
            model=self.model,
            eval_count=final_chunk.get("eval_count"),
            prompt_eval_count=final_chunk.get("prompt_eval_count"),
        )
