"""Async subprocess helpers for the xcrun command-line collaborators."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Protocol, Sequence

from SimAction.logger import logger


@dataclass(frozen=True)
class CommandResult:
    """Exit status and fully-read output of one external process."""

    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    def error_text(self) -> str:
        """Best human-readable failure description (stderr, then stdout)."""
        text = self.stderr.decode("utf-8", errors="replace").strip()
        if not text:
            text = self.stdout.decode("utf-8", errors="replace").strip()
        return text or f"exit status {self.returncode}"


class CommandRunner(Protocol):
    """Callable that runs one command and returns its CommandResult."""

    async def __call__(
        self,
        cmd: Sequence[str],
        *,
        input: bytes | None = None,
        timeout: float | None = None,
    ) -> CommandResult: ...


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        process.kill()
        await process.wait()


async def run_cmd_silently(
    cmd: Sequence[str],
    *,
    input: bytes | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run a command without a shell and wait for it to exit.

    Args:
        cmd: Executable followed by its arguments
        input: Bytes written to stdin before it is closed
        timeout: Deadline in seconds, None waits forever

    Returns:
        CommandResult with the exit status and captured output

    Raises:
        OSError: The executable could not be started
        asyncio.TimeoutError: The deadline expired (the process is killed)
        asyncio.CancelledError: The caller was cancelled (the process is killed)
    """
    logger.debug(f"Running command: {' '.join(cmd)}")

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(input=input), timeout=timeout
        )
    except asyncio.TimeoutError:
        await _kill(process)
        logger.warning(f"Command timed out after {timeout}s: {' '.join(cmd)}")
        raise
    except BaseException:
        # Cancelled or interrupted: the child must not outlive its caller
        await _kill(process)
        raise

    return CommandResult(
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout or b"",
        stderr=stderr or b"",
    )
