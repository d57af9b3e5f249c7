"""Tool registration, dispatch and subprocess execution.

This package provides the ToolRegistry used by tool servers and the
run_command helper that handlers use to drive external programs.
"""

from toolbridge.tools.process import CommandResult, run_command
from toolbridge.tools.registry import (
    RegisteredTool,
    ToolHandler,
    ToolOutcome,
    ToolRegistry,
)

__all__ = [
    "CommandResult",
    "RegisteredTool",
    "ToolHandler",
    "ToolOutcome",
    "ToolRegistry",
    "run_command",
]
