"""Protocol server binding a ToolRegistry to a transport.

The server answers initialize, list_tools and call_tool requests one at a
time. Tool failures of any kind are answered with success-shaped results
whose text starts with the error marker, so a single bad call never ends the
connection. Only transport faults stop the receive loop.
"""

import json
import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ValidationError

from toolbridge.errors import TransportError, UnknownToolError
from toolbridge.protocol.messages import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    CallToolParams,
    CallToolResult,
    ErrorInfo,
    InitializeResult,
    ListToolsResult,
    Method,
    Request,
    Response,
    ServerInfo,
)
from toolbridge.protocol.transport import (
    DEFAULT_FRAME_LIMIT,
    Transport,
    open_stdio_transport,
)
from toolbridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ServerState(str, Enum):
    """Lifecycle of a ToolServer."""

    IDLE = "idle"
    SERVING = "serving"
    CLOSED = "closed"


def format_tool_output(value: Any) -> str:
    """Coerce a handler's return value into displayable text.

    Strings pass through unchanged; pydantic models and other values are
    serialized as indented JSON, so JSON values survive a re-parse unchanged.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


class ToolServer:
    """Serves one registry over one transport.

    Attributes:
        name: Server name reported during the handshake
        version: Server version reported during the handshake
        registry: The frozen tool registry
        state: Current lifecycle state
    """

    def __init__(self, name: str, version: str, registry: ToolRegistry) -> None:
        self.name = name
        self.version = version
        self.registry = registry.freeze()
        self.state = ServerState.IDLE
        self._transport: Transport | None = None

    async def serve(self, transport: Transport) -> None:
        """Bind the transport and answer requests until the stream ends.

        Args:
            transport: Transport connected to a single client

        Raises:
            RuntimeError: If the server was already bound
            TransportError: If the stream fails or delivers a malformed frame
        """
        if self.state is not ServerState.IDLE:
            raise RuntimeError(f"Server {self.name} cannot serve from state {self.state.value}")

        self._transport = transport
        self.state = ServerState.SERVING
        logger.info(f"Server {self.name} serving {len(self.registry)} tools")

        try:
            while self.state is ServerState.SERVING:
                message = await transport.receive()
                if message is None:
                    logger.info(f"Client closed the connection to {self.name}")
                    break

                response = await self.handle_message(message)
                await transport.send(response.to_wire())
        except TransportError as e:
            logger.error(f"Transport failure in {self.name}: {e}")
            raise
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Stop serving and release the transport. Idempotent."""
        if self.state is ServerState.CLOSED:
            return

        self.state = ServerState.CLOSED
        if self._transport is not None:
            await self._transport.close()
            self._transport = None
        logger.debug(f"Server {self.name} closed")

    async def run_stdio(self, frame_limit: int = DEFAULT_FRAME_LIMIT) -> None:
        """Serve on this process's stdin/stdout until stdin is closed."""
        transport = await open_stdio_transport(limit=frame_limit)
        logger.info(f"{self.name} started on stdio")
        await self.serve(transport)

    async def handle_message(self, message: dict[str, Any]) -> Response:
        """Answer one decoded request message.

        Args:
            message: Decoded JSON object received from the client

        Returns:
            Response: Result or protocol error correlated to the request id
        """
        try:
            request = Request.model_validate(message)
        except ValidationError as e:
            request_id = message.get("id")
            if not isinstance(request_id, (int, str)):
                request_id = None
            logger.warning(f"Rejected malformed request: {e.error_count()} error(s)")
            return Response(
                id=request_id,
                error=ErrorInfo(code=INVALID_REQUEST, message="Invalid request"),
            )

        logger.debug(f"Handling {request.method} request {request.id}")

        if request.method == Method.INITIALIZE.value:
            result = InitializeResult(
                server_info=ServerInfo(name=self.name, version=self.version)
            )
            return Response(id=request.id, result=result.model_dump(mode="json"))

        if request.method == Method.LIST_TOOLS.value:
            result = ListToolsResult(tools=self.registry.list())
            return Response(id=request.id, result=result.model_dump(mode="json"))

        if request.method == Method.CALL_TOOL.value:
            try:
                params = CallToolParams.model_validate(request.params)
            except ValidationError as e:
                return Response(
                    id=request.id,
                    error=ErrorInfo(
                        code=INVALID_PARAMS,
                        message=f"Invalid call_tool params: {e.error_count()} error(s)",
                    ),
                )
            result = await self.call_tool(params.name, params.arguments)
            return Response(id=request.id, result=result.model_dump(mode="json"))

        return Response(
            id=request.id,
            error=ErrorInfo(
                code=METHOD_NOT_FOUND, message=f"Method not found: {request.method}"
            ),
        )

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        """Dispatch a tool call and shape the outcome as a displayable result."""
        try:
            outcome = await self.registry.dispatch(name, arguments)
        except UnknownToolError as e:
            logger.warning(f"Call to unknown tool: {name}")
            return CallToolResult.from_error(str(e))

        if not outcome.ok:
            return CallToolResult.from_error(outcome.error or "Tool failed")

        try:
            text = format_tool_output(outcome.value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Tool {name} returned a value that cannot be displayed: {e}")
            return CallToolResult.from_error(f"Tool returned an unserializable result: {e}")

        return CallToolResult.from_text(text)
