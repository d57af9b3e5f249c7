"""Echo tool server: small tools for trying out a client end to end."""

from pathlib import Path

from pydantic import BaseModel, Field

from toolbridge.errors import HandlerFailure
from toolbridge.tools.registry import ToolRegistry


class EchoArguments(BaseModel):
    msg: str = Field(description="Message to echo back")


class AddArguments(BaseModel):
    a: float = Field(description="First addend")
    b: float = Field(description="Second addend")


class RaiseErrorArguments(BaseModel):
    message: str = Field(default="Requested failure", description="Error message to raise")


def build_echo_registry(project_path: Path | None = None) -> ToolRegistry:
    """Register the echo server's tools. project_path is unused."""
    registry = ToolRegistry()

    @registry.tool("echo", "Echo a message back unchanged", EchoArguments)
    async def echo(args: EchoArguments) -> str:
        return args.msg

    @registry.tool("add", "Add two numbers and return the operands with their sum", AddArguments)
    async def add(args: AddArguments) -> dict:
        return {"a": args.a, "b": args.b, "sum": args.a + args.b}

    @registry.tool(
        "raise_error",
        "Fail with the given message, to exercise error reporting",
        RaiseErrorArguments,
    )
    async def raise_error(args: RaiseErrorArguments) -> str:
        raise HandlerFailure(args.message)

    return registry
