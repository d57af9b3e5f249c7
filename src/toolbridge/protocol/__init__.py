"""Wire protocol: message models and framed transports."""

from toolbridge.protocol.messages import (
    CallToolParams,
    CallToolResult,
    ErrorInfo,
    InitializeResult,
    ListToolsResult,
    Method,
    Request,
    Response,
    ServerInfo,
    TextContent,
    ToolDescriptor,
)
from toolbridge.protocol.transport import (
    MemoryTransport,
    StreamTransport,
    Transport,
    create_memory_transport_pair,
    decode_frame,
    encode_frame,
    open_stdio_transport,
)

__all__ = [
    # Messages
    "CallToolParams",
    "CallToolResult",
    "ErrorInfo",
    "InitializeResult",
    "ListToolsResult",
    "Method",
    "Request",
    "Response",
    "ServerInfo",
    "TextContent",
    "ToolDescriptor",
    # Transports
    "MemoryTransport",
    "StreamTransport",
    "Transport",
    "create_memory_transport_pair",
    "decode_frame",
    "encode_frame",
    "open_stdio_transport",
]
