"""External command execution.

This module handles:
- The command-execution interface used by every pipeline stage
- Running tools as asyncio subprocesses with captured output
- Enforcing per-invocation timeouts

Stages never spawn processes directly, so tests can substitute an
executor that returns scripted results.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shlex
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from iso_creator.errors import ToolInvocationError, ToolTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result of an external command.

    Attributes:
        exit_code: Process exit code.
        stdout: Captured standard output.
        stderr: Captured standard error.
        command: The command line that was executed.
        started_at: Start time.
        finished_at: Finish time.
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    command: str = ""
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def success(self) -> bool:
        """Whether the command exited with status 0."""
        return self.exit_code == 0

    def error_text(self) -> str:
        """Best available failure description (stderr, else stdout)."""
        text = self.stderr.strip() or self.stdout.strip()
        return text or f"exit code {self.exit_code}"


class CommandExecutor(Protocol):
    """Interface for running external programs."""

    async def run(
        self,
        program: str,
        args: Sequence[str],
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a program to completion.

        Args:
            program: Executable name or path.
            args: Arguments, without the program.
            cwd: Working directory.
            timeout: Seconds before the process is killed (None = no limit).

        Returns:
            CommandResult; a non-zero exit code is not an exception.

        Raises:
            ToolInvocationError: If the program cannot be started.
            ToolTimeoutError: If the timeout expires.
        """
        ...


def format_command(program: str, args: Sequence[str]) -> str:
    """Render a command line for logs."""
    return shlex.join([program, *args])


class SubprocessExecutor:
    """Run commands as asyncio subprocesses."""

    def __init__(self, default_timeout: float | None = None) -> None:
        self.default_timeout = default_timeout

    async def run(
        self,
        program: str,
        args: Sequence[str],
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a program and capture its output.

        See CommandExecutor.run.
        """
        if timeout is None:
            timeout = self.default_timeout
        cmd_str = format_command(program, args)
        logger.info("Executing: %s", cmd_str)
        if cwd is not None:
            logger.debug("Working directory: %s", cwd)

        started_at = datetime.now(timezone.utc)
        try:
            process = await asyncio.create_subprocess_exec(
                program,
                *args,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            message = f"Failed to execute {program}: {e}"
            logger.error(message)
            raise ToolInvocationError(
                message, exit_code=None, command=cmd_str, code="execution_error"
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            await _kill(process)
            message = f"{program} timed out after {timeout} seconds"
            logger.error(message)
            raise ToolTimeoutError(message, timeout=timeout or 0, command=cmd_str) from e
        except BaseException:
            # Cancelled callers must not leave the tool writing into the build dir
            logger.warning("Killing %s after interruption", program)
            await _kill(process)
            raise

        finished_at = datetime.now(timezone.utc)
        exit_code = process.returncode if process.returncode is not None else -1
        duration = (finished_at - started_at).total_seconds()
        if exit_code != 0:
            logger.warning(
                "%s exited with code %d after %.1fs", program, exit_code, duration
            )
        else:
            logger.debug("%s finished in %.1fs", program, duration)

        return CommandResult(
            exit_code=exit_code,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            command=cmd_str,
            started_at=started_at,
            finished_at=finished_at,
        )


async def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill a child process and reap it."""
    with contextlib.suppress(ProcessLookupError):
        process.kill()
    await process.wait()


def check_result(result: CommandResult, program: str) -> CommandResult:
    """Turn a non-zero exit into a fatal ToolInvocationError.

    Args:
        result: Command result to check.
        program: Tool name used in the message.

    Returns:
        The result, if successful.

    Raises:
        ToolInvocationError: If the command exited non-zero.
    """
    if not result.success:
        raise ToolInvocationError(
            f"{program} failed: {result.error_text()}",
            exit_code=result.exit_code,
            stderr=result.stderr,
            command=result.command,
        )
    return result


__all__ = [
    "CommandExecutor",
    "CommandResult",
    "SubprocessExecutor",
    "check_result",
    "format_command",
]
