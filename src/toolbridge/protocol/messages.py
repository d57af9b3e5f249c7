"""Pydantic models for the tool protocol wire format.

Messages follow the JSON-RPC 2.0 envelope: a request carries an id, a method
and params; a response carries the same id and exactly one of result or
error. Tool results are always delivered as success-shaped CallToolResult
payloads, with is_error set when the tool itself failed.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2025-06-18"

ERROR_MARKER = "Error:"

# JSON-RPC error codes
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602


class Method(str, Enum):
    """Request kinds understood by a tool server."""

    INITIALIZE = "initialize"
    LIST_TOOLS = "list_tools"
    CALL_TOOL = "call_tool"


class ToolDescriptor(BaseModel):
    """Declarative description of a tool, as advertised in the catalogue."""

    name: str = Field(description="Tool name, unique within a registry")
    description: str = Field(default="", description="Human-readable description")
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON Schema describing the accepted arguments",
    )

    model_config = ConfigDict(frozen=True)


class Request(BaseModel):
    """A request sent from client to server."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: int | str
    method: str
    params: dict[str, Any] = Field(default_factory=dict)


class ErrorInfo(BaseModel):
    """Protocol-level error payload."""

    code: int
    message: str


class Response(BaseModel):
    """A response correlated to a request by id."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: int | str | None = None
    result: dict[str, Any] | None = None
    error: ErrorInfo | None = None

    @model_validator(mode="after")
    def _exactly_one_payload(self) -> "Response":
        if (self.result is None) == (self.error is None):
            raise ValueError("Response must carry exactly one of result or error")
        return self

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the transport, keeping id even when it is null."""
        data = self.model_dump(mode="json", exclude_none=True)
        data["id"] = self.id
        return data


class ServerInfo(BaseModel):
    """Name and version a server reports during the handshake."""

    name: str
    version: str


class InitializeResult(BaseModel):
    """Result of the initialize request."""

    protocol_version: str = PROTOCOL_VERSION
    server_info: ServerInfo
    capabilities: dict[str, Any] = Field(default_factory=lambda: {"tools": {}})


class ListToolsResult(BaseModel):
    """Result of the list_tools request."""

    tools: list[ToolDescriptor] = Field(default_factory=list)


class CallToolParams(BaseModel):
    """Params of the call_tool request."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class TextContent(BaseModel):
    """A displayable text block inside a tool result."""

    type: Literal["text"] = "text"
    text: str


class CallToolResult(BaseModel):
    """Result of the call_tool request.

    Tool failures are reported here rather than as protocol errors so that the
    calling model sees them as conversational content and can adapt.
    """

    content: list[TextContent] = Field(default_factory=list)
    is_error: bool = False

    @property
    def text(self) -> str:
        """All text blocks joined with newlines."""
        return "\n".join(block.text for block in self.content)

    @classmethod
    def from_text(cls, text: str, is_error: bool = False) -> "CallToolResult":
        return cls(content=[TextContent(text=text)], is_error=is_error)

    @classmethod
    def from_error(cls, message: str) -> "CallToolResult":
        return cls.from_text(f"{ERROR_MARKER} {message}", is_error=True)
