"""Protocol client for tool servers.

ToolClient launches a tool server as a child process (or attaches to an
existing transport), performs the initialize/list_tools handshake, caches the
advertised catalogue and issues call_tool requests one at a time.
"""

import asyncio
import itertools
import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, ValidationError

from toolbridge.errors import RemoteError, ServerConnectionError, TransportError
from toolbridge.protocol.messages import (
    CallToolParams,
    CallToolResult,
    InitializeResult,
    ListToolsResult,
    Method,
    Request,
    Response,
    ServerInfo,
    ToolDescriptor,
)
from toolbridge.protocol.transport import (
    DEFAULT_FRAME_LIMIT,
    StreamTransport,
    Transport,
)

logger = logging.getLogger(__name__)


class ToolClient:
    """Client side of the tool protocol.

    The catalogue is fetched once per connection and kept until disconnect.
    Only one request is in flight at a time; responses are matched to their
    request by id.

    Attributes:
        handshake_timeout: Seconds allowed for initialize + list_tools
        max_frame_bytes: Largest frame accepted from a spawned server
    """

    def __init__(
        self,
        handshake_timeout: float = 30.0,
        max_frame_bytes: int = DEFAULT_FRAME_LIMIT,
        shutdown_timeout: float = 5.0,
    ) -> None:
        self.handshake_timeout = handshake_timeout
        self.max_frame_bytes = max_frame_bytes
        self.shutdown_timeout = shutdown_timeout

        self._transport: Transport | None = None
        self._process: asyncio.subprocess.Process | None = None
        self._tools: list[ToolDescriptor] = []
        self._server_info: ServerInfo | None = None
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._transport is not None

    @property
    def tools(self) -> list[ToolDescriptor]:
        """The catalogue advertised by the connected server."""
        return list(self._tools)

    @property
    def server_info(self) -> ServerInfo | None:
        return self._server_info

    async def __aenter__(self) -> "ToolClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()

    async def connect(
        self,
        command: str,
        args: Sequence[str] = (),
        env: Mapping[str, str] | None = None,
        cwd: str | Path | None = None,
    ) -> list[ToolDescriptor]:
        """Launch a tool server and complete the handshake.

        Args:
            command: Server executable
            args: Arguments passed to the server, each a separate element
            env: Environment for the child process (default: inherited)
            cwd: Working directory for the child process

        Returns:
            list[ToolDescriptor]: The server's tool catalogue

        Raises:
            ServerConnectionError: If the process cannot be launched or the
                                   handshake fails
        """
        if self.connected:
            raise ServerConnectionError("Client is already connected")

        logger.info(f"Launching tool server: {command} {' '.join(args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                env=dict(env) if env is not None else None,
                cwd=str(cwd) if cwd is not None else None,
                limit=self.max_frame_bytes,
            )
        except OSError as e:
            raise ServerConnectionError(
                f"Failed to launch tool server '{command}': {e}"
            ) from e

        assert process.stdin is not None and process.stdout is not None
        self._process = process
        return await self.connect_transport(StreamTransport(process.stdout, process.stdin))

    async def connect_transport(self, transport: Transport) -> list[ToolDescriptor]:
        """Complete the handshake over an already open transport.

        Args:
            transport: Transport connected to a tool server

        Returns:
            list[ToolDescriptor]: The server's tool catalogue

        Raises:
            ServerConnectionError: If the handshake fails
        """
        if self._transport is not None:
            raise ServerConnectionError("Client is already connected")
        self._transport = transport

        try:
            await asyncio.wait_for(self._handshake(), self.handshake_timeout)
        except asyncio.TimeoutError as e:
            await self.disconnect()
            raise ServerConnectionError(
                f"Tool server did not complete the handshake within "
                f"{self.handshake_timeout}s"
            ) from e
        except (TransportError, RemoteError, ValidationError) as e:
            await self.disconnect()
            raise ServerConnectionError(f"Handshake with tool server failed: {e}") from e

        server_name = self._server_info.name if self._server_info else "tool server"
        logger.info(f"Connected to {server_name}. Found {len(self._tools)} tools.")
        return self.tools

    async def _handshake(self) -> None:
        init = InitializeResult.model_validate(await self._request(Method.INITIALIZE))
        self._server_info = init.server_info

        listing = ListToolsResult.model_validate(await self._request(Method.LIST_TOOLS))
        self._tools = listing.tools

    async def list_tools(self) -> list[ToolDescriptor]:
        """Return the cached catalogue, failing if not connected."""
        if not self.connected:
            raise TransportError("Not connected to a tool server")
        return self.tools

    async def call_tool(
        self, name: str, arguments: dict[str, Any] | None = None
    ) -> CallToolResult:
        """Invoke a tool on the server.

        Tool failures arrive as results with is_error set; they are returned
        as-is, not raised.

        Args:
            name: Tool name
            arguments: Tool arguments (default: empty object)

        Returns:
            CallToolResult: The server's result payload

        Raises:
            TransportError: If the connection fails
            RemoteError: If the server rejects the request itself
        """
        params = CallToolParams(name=name, arguments=arguments or {})
        result = await self._request(Method.CALL_TOOL, params)
        try:
            return CallToolResult.model_validate(result)
        except ValidationError as e:
            raise TransportError(f"Malformed call_tool result: {e}") from e

    async def _request(
        self, method: Method, params: BaseModel | None = None
    ) -> dict[str, Any]:
        async with self._lock:
            transport = self._transport
            if transport is None:
                raise TransportError("Not connected to a tool server")

            request = Request(
                id=next(self._ids),
                method=method.value,
                params=params.model_dump(mode="json") if params is not None else {},
            )
            await transport.send(request.model_dump(mode="json"))

            message = await transport.receive()
            if message is None:
                raise TransportError("Tool server closed the connection")

            try:
                response = Response.model_validate(message)
            except ValidationError as e:
                raise TransportError(f"Malformed response: {e}") from e

            if response.id != request.id:
                raise TransportError(
                    f"Response id {response.id!r} does not match request id {request.id!r}"
                )
            if response.error is not None:
                raise RemoteError(response.error.code, response.error.message)

            assert response.result is not None
            return response.result

    async def disconnect(self) -> None:
        """Close the transport and stop the server process. Idempotent."""
        transport, process = self._transport, self._process
        if transport is None and process is None:
            return

        self._transport = None
        self._process = None
        self._tools = []
        self._server_info = None

        if transport is not None:
            await transport.close()

        if process is not None and process.returncode is None:
            try:
                await asyncio.wait_for(process.wait(), self.shutdown_timeout)
            except asyncio.TimeoutError:
                logger.warning("Tool server did not exit after stdin closed; terminating")
                process.terminate()
                try:
                    await asyncio.wait_for(process.wait(), self.shutdown_timeout)
                except asyncio.TimeoutError:
                    process.kill()
                    await process.wait()

        logger.info("Disconnected from tool server.")
