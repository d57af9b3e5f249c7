"""Data types for conversations.

This module defines the chat message types kept in a conversation history,
the segments a completion response is made of, and the events a turn emits
to its caller.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def _new_message_id() -> str:
    return uuid.uuid4().hex[:10]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class UserMessage:
    """A message from the user."""

    role: str = "user"
    content: str = ""
    message_id: str = field(default_factory=_new_message_id)
    timestamp: str = field(default_factory=_timestamp)

    def __post_init__(self) -> None:
        """Validate role is always 'user'."""
        self.role = "user"


@dataclass
class SystemMessage:
    """A system prompt message."""

    role: str = "system"
    content: str = ""
    message_id: str = field(default_factory=_new_message_id)
    timestamp: str = field(default_factory=_timestamp)

    def __post_init__(self) -> None:
        """Validate role is always 'system'."""
        self.role = "system"


@dataclass
class AssistantMessage:
    """A response from the LLM assistant."""

    role: str = "assistant"
    content: str = ""
    model: str = ""
    message_id: str = field(default_factory=_new_message_id)
    timestamp: str = field(default_factory=_timestamp)
    tool_calls: list[dict[str, Any]] | None = None

    def __post_init__(self) -> None:
        """Validate role is always 'assistant'."""
        self.role = "assistant"


@dataclass
class ToolMessage:
    """A tool execution result."""

    role: str = "tool"
    tool_name: str = ""
    content: str = ""
    message_id: str = field(default_factory=_new_message_id)
    timestamp: str = field(default_factory=_timestamp)

    def __post_init__(self) -> None:
        """Validate role is always 'tool'."""
        self.role = "tool"


# Union type for all message types
Message = UserMessage | SystemMessage | AssistantMessage | ToolMessage


@dataclass(frozen=True)
class TextSegment:
    """Plain text produced by the model."""

    text: str


@dataclass(frozen=True)
class ToolCallSegment:
    """A request from the model to invoke a tool."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    def to_ollama(self) -> dict[str, Any]:
        return {"function": {"name": self.name, "arguments": self.arguments}}


Segment = TextSegment | ToolCallSegment


@dataclass
class CompletionResponse:
    """One response from the completion endpoint, as ordered segments."""

    segments: list[Segment] = field(default_factory=list)
    model: str = ""
    eval_count: int | None = None
    prompt_eval_count: int | None = None

    @property
    def text(self) -> str:
        return "".join(s.text for s in self.segments if isinstance(s, TextSegment))

    @property
    def tool_calls(self) -> list[ToolCallSegment]:
        return [s for s in self.segments if isinstance(s, ToolCallSegment)]


class TurnState(str, Enum):
    """Where a turn is in its model/tool loop."""

    AWAITING_MODEL = "awaiting_model"
    INSPECTING_RESPONSE = "inspecting_response"
    DISPATCHING_TOOL = "dispatching_tool"
    TURN_COMPLETE = "turn_complete"


@dataclass
class ConversationTurn:
    """State of one user exchange, discarded when the turn ends."""

    messages: list[Message]
    state: TurnState = TurnState.AWAITING_MODEL
    completion_calls: int = 0
    tool_rounds: int = 0
    tool_calls: int = 0


@dataclass(frozen=True)
class TextEvent:
    """Model text, emitted as soon as its segment is inspected."""

    text: str


@dataclass(frozen=True)
class ToolCallEvent:
    """A tool is about to be invoked."""

    name: str
    arguments: dict[str, Any]


@dataclass(frozen=True)
class ToolResultEvent:
    """A tool invocation returned."""

    name: str
    content: str
    is_error: bool = False


@dataclass(frozen=True)
class TurnCompleteEvent:
    """The model answered without requesting tools; the turn is over."""

    completion_calls: int
    tool_calls: int


TurnEvent = TextEvent | ToolCallEvent | ToolResultEvent | TurnCompleteEvent


@dataclass
class TurnResult:
    """Everything a turn emitted, collected."""

    events: list[TurnEvent] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(e.text for e in self.events if isinstance(e, TextEvent))

    @property
    def tool_results(self) -> list[ToolResultEvent]:
        return [e for e in self.events if isinstance(e, ToolResultEvent)]
