"""Bundled tool servers.

Each entry maps a server name to the function building its tool registry
from a project path.
"""

from pathlib import Path
from typing import Callable

from toolbridge.servers.dotnet import build_dotnet_registry
from toolbridge.servers.echo import build_echo_registry
from toolbridge.servers.rails import build_rails_registry
from toolbridge.tools.registry import ToolRegistry

SERVERS: dict[str, Callable[[Path], ToolRegistry]] = {
    "echo": build_echo_registry,
    "rails": build_rails_registry,
    "dotnet": build_dotnet_registry,
}

__all__ = ["SERVERS", "build_dotnet_registry", "build_echo_registry", "build_rails_registry"]
