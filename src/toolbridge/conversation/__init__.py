"""Conversation layer: completion endpoint, message types and the turn loop."""

from toolbridge.conversation.completion import (
    CompletionEndpoint,
    OllamaCompletionEndpoint,
)
from toolbridge.conversation.orchestrator import Orchestrator, ToolCaller
from toolbridge.conversation.types import (
    AssistantMessage,
    CompletionResponse,
    ConversationTurn,
    Message,
    SystemMessage,
    TextEvent,
    TextSegment,
    ToolCallEvent,
    ToolCallSegment,
    ToolMessage,
    ToolResultEvent,
    TurnCompleteEvent,
    TurnEvent,
    TurnResult,
    TurnState,
    UserMessage,
)

__all__ = [
    # Core classes
    "CompletionEndpoint",
    "OllamaCompletionEndpoint",
    "Orchestrator",
    "ToolCaller",
    # Message types
    "Message",
    "UserMessage",
    "SystemMessage",
    "AssistantMessage",
    "ToolMessage",
    # Completion and turn types
    "CompletionResponse",
    "ConversationTurn",
    "TextSegment",
    "ToolCallSegment",
    "TurnState",
    # Events
    "TextEvent",
    "ToolCallEvent",
    "ToolResultEvent",
    "TurnCompleteEvent",
    "TurnEvent",
    "TurnResult",
]
