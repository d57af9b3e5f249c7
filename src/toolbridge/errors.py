"""Exception hierarchy for toolbridge.

Failures that originate inside a tool dispatch (UnknownToolError,
HandlerFailure, ArgumentValidationError) are recovered at the server boundary
and delivered to the caller as error content. Transport, connection and
completion failures propagate to the caller.
"""


class ToolBridgeError(Exception):
    """Base class for all toolbridge errors."""


class TransportError(ToolBridgeError):
    """The underlying stream failed or delivered a malformed frame."""


class ServerConnectionError(ToolBridgeError):
    """A tool server could not be launched or did not complete the handshake."""


class RemoteError(ToolBridgeError):
    """The peer answered a request with a protocol-level error response."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message


class UnknownToolError(ToolBridgeError):
    """The requested tool name is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class HandlerFailure(ToolBridgeError):
    """Tool logic failed; raised by handlers to report a descriptive error."""


class ArgumentValidationError(ToolBridgeError):
    """Tool arguments do not satisfy the declared input schema."""


class CompletionError(ToolBridgeError):
    """The completion endpoint failed or returned an incomplete response."""


class ToolRoundLimitError(ToolBridgeError):
    """A turn exceeded the configured number of tool round-trips."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Turn stopped after {limit} tool rounds without a final answer")
        self.limit = limit
