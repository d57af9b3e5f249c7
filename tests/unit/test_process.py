"""Unit tests for run_command."""

import sys

import pytest

from toolbridge.errors import HandlerFailure
from toolbridge.tools import run_command


@pytest.mark.asyncio
async def test_captures_stdout():
    result = await run_command([sys.executable, "-c", "print('generated')"])

    assert result.returncode == 0
    assert result.stdout.strip() == "generated"
    assert result.output.strip() == "generated"


@pytest.mark.asyncio
async def test_output_falls_back_to_stderr():
    result = await run_command(
        [sys.executable, "-c", "import sys; sys.stderr.write('warning only')"]
    )

    assert result.stdout == ""
    assert result.output == "warning only"


@pytest.mark.asyncio
async def test_arguments_are_not_shell_interpreted(tmp_path):
    """Test that shell metacharacters reach the program as literal text."""
    payload = "name; rm -rf / && echo $HOME"

    result = await run_command(
        [sys.executable, "-c", "import sys; print(sys.argv[1])", payload], cwd=tmp_path
    )

    assert result.stdout.strip() == payload


@pytest.mark.asyncio
async def test_runs_in_working_directory(tmp_path):
    result = await run_command(
        [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path
    )

    assert result.stdout.strip() == str(tmp_path.resolve())


@pytest.mark.asyncio
async def test_non_zero_exit_is_handler_failure():
    with pytest.raises(HandlerFailure, match="exited with status 3: migration failed"):
        await run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('migration failed'); sys.exit(3)"]
        )


@pytest.mark.asyncio
async def test_missing_program_is_handler_failure():
    with pytest.raises(HandlerFailure, match="Failed to start"):
        await run_command(["/nonexistent/rails"])


@pytest.mark.asyncio
async def test_timeout_is_handler_failure():
    with pytest.raises(HandlerFailure, match="timed out"):
        await run_command([sys.executable, "-c", "import time; time.sleep(10)"], timeout=0.2)
