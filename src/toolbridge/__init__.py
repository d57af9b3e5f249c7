"""toolbridge: tool-invocation protocol bridge for LLM conversations.

This package provides a line-framed JSON protocol for exposing tools from a
host process over stdio, a client that spawns such servers, and a
conversational orchestrator that alternates between model output and tool
calls until a turn completes.
"""

__version__ = "0.1.0"

from toolbridge.client import ToolClient
from toolbridge.conversation import Orchestrator
from toolbridge.server import ToolServer
from toolbridge.tools import ToolRegistry

__all__ = ["Orchestrator", "ToolClient", "ToolRegistry", "ToolServer", "__version__"]
