"""Exception hierarchy for tool invocation, decoding and validation failures."""

from __future__ import annotations


class SimActionError(Exception):
    """Base class for all SimAction errors."""


class ToolError(SimActionError):
    """An external xcrun tool call failed."""

    def __init__(self, tool: str, message: str):
        super().__init__(f"{tool}: {message}")
        self.tool = tool
        self.message = message


class ToolInvocationError(ToolError):
    """Tool exited with a non-zero status or could not be started."""

    def __init__(self, tool: str, message: str, returncode: int | None = None):
        super().__init__(tool, message)
        self.returncode = returncode


class ToolTimeoutError(ToolError):
    """Tool did not finish before its deadline and was killed."""

    def __init__(self, tool: str, timeout: float):
        super().__init__(tool, f"timed out after {timeout:.1f}s")
        self.timeout = timeout


class DecodeError(SimActionError):
    """Structured tool output did not have the expected shape."""


class ValidationError(SimActionError):
    """Caller-supplied input failed a precondition."""
