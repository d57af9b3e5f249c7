"""Subprocess execution for tool handlers.

Handlers that drive external command-line tools go through run_command, which
takes a discrete argument vector (never a shell string) and turns a failed
process into a HandlerFailure so the failure reaches the caller as error
content.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from toolbridge.errors import HandlerFailure

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Captured output of a finished command."""

    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """Standard output, or standard error when nothing was written to stdout."""
        return self.stdout or self.stderr


async def run_command(
    argv: Sequence[str],
    cwd: str | Path | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run a command and capture its output.

    Args:
        argv: Program followed by its arguments, each a separate element
        cwd: Working directory for the command
        timeout: Seconds to wait before killing the command

    Returns:
        CommandResult: Exit status and decoded output

    Raises:
        HandlerFailure: If the command cannot be started, times out, or exits
                        with a non-zero status
    """
    argv = [str(part) for part in argv]
    logger.info(f"Running command: {argv}")

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd) if cwd is not None else None,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise HandlerFailure(f"Failed to start '{argv[0]}': {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError as e:
        process.kill()
        await process.wait()
        raise HandlerFailure(f"Command timed out after {timeout}s: {argv[0]}") from e

    result = CommandResult(
        argv=argv,
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )

    if result.returncode != 0:
        logger.warning(f"Command {argv[0]} exited with status {result.returncode}")
        detail = result.stderr.strip() or result.stdout.strip()
        raise HandlerFailure(
            f"Command '{' '.join(argv)}' exited with status {result.returncode}"
            + (f": {detail}" if detail else "")
        )

    return result
