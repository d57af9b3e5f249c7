"""Tool registry: declarative tool descriptions mapped to handlers.

The registry is built once at server start-up, frozen, and then only read.
Dispatch never lets a tool failure escape: unknown names raise
UnknownToolError for the server to report, and everything raised while
validating arguments or running a handler becomes a failed ToolOutcome.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from toolbridge.errors import ArgumentValidationError, UnknownToolError
from toolbridge.protocol.messages import ToolDescriptor

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Any], Any | Awaitable[Any]]


@dataclass(frozen=True)
class RegisteredTool:
    """A registry entry: descriptor, handler and optional arguments model."""

    descriptor: ToolDescriptor
    handler: ToolHandler
    arguments_model: type[BaseModel] | None = None


@dataclass(frozen=True)
class ToolOutcome:
    """Result of dispatching one tool call.

    Exactly one of value or error is meaningful: error is None on success.
    """

    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


class ToolRegistry:
    """Insertion-ordered mapping from tool name to descriptor and handler.

    Registering a name twice replaces the earlier entry. Once frozen, the
    registry rejects further registrations and may be shared freely.
    """

    def __init__(self) -> None:
        self._tools: dict[str, RegisteredTool] = {}
        self._frozen = False

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "ToolRegistry":
        """Make the registry read-only and return it."""
        self._frozen = True
        return self

    def register(
        self,
        descriptor: ToolDescriptor,
        handler: ToolHandler,
        arguments_model: type[BaseModel] | None = None,
    ) -> None:
        """Insert or replace a tool.

        Args:
            descriptor: Tool name, description and input schema
            handler: Sync or async callable invoked with the tool arguments.
                     Receives a validated arguments_model instance when one is
                     given, otherwise the raw arguments dict.
            arguments_model: Optional pydantic model used to validate arguments

        Raises:
            RuntimeError: If the registry has been frozen
        """
        if self._frozen:
            raise RuntimeError(
                f"Cannot register tool '{descriptor.name}': registry is frozen"
            )

        if descriptor.name in self._tools:
            logger.debug(f"Replacing previously registered tool: {descriptor.name}")

        self._tools[descriptor.name] = RegisteredTool(
            descriptor=descriptor.model_copy(deep=True),
            handler=handler,
            arguments_model=arguments_model,
        )

    def tool(
        self,
        name: str,
        description: str,
        arguments_model: type[BaseModel] | None = None,
        input_schema: dict[str, Any] | None = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator registering a function as a tool.

        The input schema defaults to the arguments model's JSON schema, or to
        an empty object schema when neither is given.

        Example:
            >>> registry = ToolRegistry()
            >>> @registry.tool("echo", "Echo a message", EchoArguments)
            ... async def echo(args: EchoArguments) -> str:
            ...     return args.msg
        """
        if input_schema is None:
            if arguments_model is not None:
                input_schema = arguments_model.model_json_schema()
            else:
                input_schema = {"type": "object", "properties": {}}

        descriptor = ToolDescriptor(
            name=name, description=description, input_schema=input_schema
        )

        def decorator(handler: ToolHandler) -> ToolHandler:
            self.register(descriptor, handler, arguments_model)
            return handler

        return decorator

    def list(self) -> list[ToolDescriptor]:
        """Return the descriptors in registration order."""
        return [entry.descriptor for entry in self._tools.values()]

    def get(self, name: str) -> RegisteredTool | None:
        return self._tools.get(name)

    def _validate_arguments(self, entry: RegisteredTool, arguments: Any) -> Any:
        if not isinstance(arguments, dict):
            raise ArgumentValidationError(
                f"Arguments for tool '{entry.descriptor.name}' must be an object"
            )

        if entry.arguments_model is not None:
            try:
                return entry.arguments_model.model_validate(arguments)
            except ValidationError as e:
                raise ArgumentValidationError(
                    f"Invalid arguments for tool '{entry.descriptor.name}': "
                    f"{_format_validation_error(e)}"
                ) from e

        required = entry.descriptor.input_schema.get("required", [])
        missing = [key for key in required if key not in arguments]
        if missing:
            raise ArgumentValidationError(
                f"Invalid arguments for tool '{entry.descriptor.name}': "
                f"missing required field(s) {', '.join(missing)}"
            )
        return arguments

    async def dispatch(self, name: str, arguments: Any) -> ToolOutcome:
        """Validate arguments and run the named tool's handler.

        Args:
            name: Registered tool name
            arguments: Argument object supplied by the caller

        Returns:
            ToolOutcome: The handler's value, or the error that stopped it

        Raises:
            UnknownToolError: If no tool with this name is registered
        """
        entry = self._tools.get(name)
        if entry is None:
            raise UnknownToolError(name)

        try:
            validated = self._validate_arguments(entry, arguments)
            value = entry.handler(validated)
            if inspect.isawaitable(value):
                value = await value
        except Exception as e:
            logger.warning(f"Tool {name} failed: {e}")
            return ToolOutcome(error=str(e) or type(e).__name__)

        logger.debug(f"Tool {name} completed")
        return ToolOutcome(value=value)
