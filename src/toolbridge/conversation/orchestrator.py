"""Conversational orchestrator: the model/tool turn loop.

A turn sends the history and the tool catalogue to the completion endpoint,
emits text segments, dispatches tool-call segments in document order and
feeds their results back, until the model answers without requesting a tool.
"""

import logging
from typing import AsyncIterator, Protocol

from toolbridge.conversation.completion import CompletionEndpoint
from toolbridge.conversation.types import (
    AssistantMessage,
    ConversationTurn,
    Message,
    SystemMessage,
    TextEvent,
    TextSegment,
    ToolCallEvent,
    ToolMessage,
    ToolResultEvent,
    TurnCompleteEvent,
    TurnEvent,
    TurnResult,
    TurnState,
    UserMessage,
)
from toolbridge.errors import ToolRoundLimitError
from toolbridge.protocol.messages import CallToolResult, ToolDescriptor

logger = logging.getLogger(__name__)


class ToolCaller(Protocol):
    """The slice of ToolClient the orchestrator depends on."""

    @property
    def tools(self) -> list[ToolDescriptor]: ...

    async def call_tool(self, name: str, arguments: dict | None = None) -> CallToolResult: ...


class Orchestrator:
    """Drives conversation turns between a completion endpoint and a tool server.

    History is kept in memory for the lifetime of the orchestrator; a turn's
    messages are committed to it when the turn ends.

    Attributes:
        completion: Endpoint asked for each model response
        tool_caller: Client used to run tools and read the catalogue
        max_tool_rounds: Tool round-trips allowed per turn; None or 0 for no bound
    """

    def __init__(
        self,
        completion: CompletionEndpoint,
        tool_caller: ToolCaller,
        max_tool_rounds: int | None = 10,
        system_prompt: str | None = None,
    ) -> None:
        self.completion = completion
        self.tool_caller = tool_caller
        self.max_tool_rounds = max_tool_rounds
        self.system_prompt = system_prompt
        self.history: list[Message] = []
        self.reset()

    def reset(self) -> None:
        """Forget the conversation, keeping only the system prompt."""
        self.history = []
        if self.system_prompt:
            self.history.append(SystemMessage(content=self.system_prompt))

    async def run_turn(self, user_text: str) -> AsyncIterator[TurnEvent]:
        """Run one user exchange, yielding events in document order.

        Args:
            user_text: The user's message

        Yields:
            TurnEvent: TextEvent, ToolCallEvent and ToolResultEvent as they
                       happen, then a final TurnCompleteEvent

        Raises:
            ToolRoundLimitError: If the model keeps requesting tools past
                                 max_tool_rounds
            CompletionError: If the completion endpoint fails
            TransportError: If the tool server connection fails
        """
        turn = ConversationTurn(
            messages=[*self.history, UserMessage(content=user_text)]
        )
        catalogue = self.tool_caller.tools

        while True:
            turn.state = TurnState.AWAITING_MODEL
            logger.debug(
                f"Requesting completion {turn.completion_calls + 1} "
                f"with {len(turn.messages)} messages"
            )
            response = await self.completion.complete(turn.messages, catalogue)
            turn.completion_calls += 1

            turn.state = TurnState.INSPECTING_RESPONSE
            tool_calls = response.tool_calls

            if (
                tool_calls
                and self.max_tool_rounds
                and turn.tool_rounds >= self.max_tool_rounds
            ):
                # Keep the text of the refused response; its tool calls are never run.
                if response.text:
                    yield TextEvent(text=response.text)
                    turn.messages.append(
                        AssistantMessage(content=response.text, model=response.model)
                    )
                self.history = turn.messages
                logger.warning(f"Turn reached the tool round limit ({self.max_tool_rounds})")
                raise ToolRoundLimitError(self.max_tool_rounds)

            turn.messages.append(
                AssistantMessage(
                    content=response.text,
                    model=response.model,
                    tool_calls=[call.to_ollama() for call in tool_calls] or None,
                )
            )

            for segment in response.segments:
                if isinstance(segment, TextSegment):
                    yield TextEvent(text=segment.text)
                    continue

                turn.state = TurnState.DISPATCHING_TOOL
                yield ToolCallEvent(name=segment.name, arguments=segment.arguments)

                logger.info(f"Calling tool {segment.name}")
                result = await self.tool_caller.call_tool(segment.name, segment.arguments)
                turn.tool_calls += 1

                turn.messages.append(
                    ToolMessage(tool_name=segment.name, content=result.text)
                )
                yield ToolResultEvent(
                    name=segment.name, content=result.text, is_error=result.is_error
                )

            if not tool_calls:
                turn.state = TurnState.TURN_COMPLETE
                self.history = turn.messages
                logger.info(
                    f"Turn complete after {turn.completion_calls} completions "
                    f"and {turn.tool_calls} tool calls"
                )
                yield TurnCompleteEvent(
                    completion_calls=turn.completion_calls,
                    tool_calls=turn.tool_calls,
                )
                return

            turn.tool_rounds += 1

    async def send_message(self, user_text: str) -> TurnResult:
        """Run one turn and collect all of its events."""
        result = TurnResult()
        async for event in self.run_turn(user_text):
            result.events.append(event)
        return result
