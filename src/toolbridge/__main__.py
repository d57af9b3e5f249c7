"""CLI entry point for toolbridge.

This module provides the command-line interface. It can be invoked as
`toolbridge` (via the script entry point) or `python -m toolbridge`.

    toolbridge chat <server-command> [server-args...]
    toolbridge serve {dotnet,echo,rails} [--project-path PATH]
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from toolbridge import __version__
from toolbridge.config import ToolBridgeSettings
from toolbridge.errors import TransportError
from toolbridge.server import ToolServer
from toolbridge.servers import SERVERS

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toolbridge",
        description="Expose tools over stdio and chat with an LLM that can call them",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"toolbridge {__version__}",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: WARNING, can be set via TOOLBRIDGE_LOG_LEVEL)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    chat = subparsers.add_parser("chat", help="Chat with a model using a tool server")
    chat.add_argument(
        "--model",
        type=str,
        default=None,
        help="Model name (default: llama3.2:latest, can be set via TOOLBRIDGE_MODEL)",
    )
    chat.add_argument(
        "--ollama-host",
        type=str,
        default=None,
        help="Ollama server URL (default: http://localhost:11434, can be set via TOOLBRIDGE_OLLAMA_HOST)",
    )
    chat.add_argument(
        "--max-tool-rounds",
        type=int,
        default=None,
        help="Tool round-trips allowed per turn, 0 for no limit (default: 10)",
    )
    chat.add_argument("server_command", help="Tool server executable")
    chat.add_argument(
        "server_args",
        nargs=argparse.REMAINDER,
        help="Arguments passed to the tool server",
    )

    serve = subparsers.add_parser("serve", help="Run a bundled tool server on stdio")
    serve.add_argument("server", choices=sorted(SERVERS), help="Server to run")
    serve.add_argument(
        "--project-path",
        type=Path,
        default=None,
        help="Project the tools operate on (default: current directory)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the toolbridge CLI."""
    args = build_parser().parse_args(argv)

    # Build settings, CLI args override environment variables
    settings_kwargs = {}
    if args.log_level is not None:
        settings_kwargs["log_level"] = args.log_level
    if args.command == "chat":
        if args.model is not None:
            settings_kwargs["model"] = args.model
        if args.ollama_host is not None:
            settings_kwargs["ollama_host"] = args.ollama_host
        if args.max_tool_rounds is not None:
            settings_kwargs["max_tool_rounds"] = args.max_tool_rounds

    settings = ToolBridgeSettings(**settings_kwargs)

    # stdout belongs to the protocol when serving; diagnostics go to stderr
    logging.basicConfig(
        level=settings.log_level.upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "chat":
        from toolbridge.console import run_chat

        return asyncio.run(run_chat(settings, args.server_command, args.server_args))

    project_path = (args.project_path or Path.cwd()).resolve()
    registry = SERVERS[args.server](project_path)
    server = ToolServer(f"{args.server}-tool-server", __version__, registry)

    try:
        asyncio.run(server.run_stdio(frame_limit=settings.max_frame_bytes))
    except TransportError:
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
