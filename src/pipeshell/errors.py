"""Exception types raised by pipeshell.

pipeshell errors v0.1.0
"""

from __future__ import annotations

from collections.abc import Sequence

__all__ = [
    "ShellError",
    "SessionClosedError",
    "CommandWriteError",
    "StreamReadError",
    "ProcessStartError",
    "CommandTimeoutError",
]


class ShellError(Exception):
    """Base class for all pipeshell errors."""
    pass


class SessionClosedError(ShellError):
    """Operation attempted on a shell that has already exited.

    Attributes:
        command: The command that was rejected (empty for exit/kill)
    """

    def __init__(self, command: str = "") -> None:
        self.command = command
        if command:
            message = f"Cannot execute commands on closed shells: {command!r}"
        else:
            message = "Shell is already closed"
        super().__init__(message)


class CommandWriteError(ShellError):
    """The interpreter's stdin rejected the command."""

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"Could not send command {command!r}")


class StreamReadError(ShellError):
    """Capture of one output stream failed or ended before its boundary.

    Attributes:
        stream: "stdout" or "stderr"
        command: The command whose output was being captured
        partial: Text captured before the failure
    """

    def __init__(self, stream: str, command: str, partial: str = "", reason: str = "") -> None:
        self.stream = stream
        self.command = command
        self.partial = partial
        message = f"Reading {stream} failed for command {command!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ProcessStartError(ShellError):
    """The process backend could not launch the interpreter."""

    def __init__(self, executable: str, argv: Sequence[str] = ()) -> None:
        self.executable = executable
        self.argv = tuple(argv)
        super().__init__(f"Could not start {executable!r} with args {list(self.argv)!r}")


class CommandTimeoutError(ShellError):
    """The command did not finish on both streams within the timeout."""

    def __init__(self, command: str, timeout: float) -> None:
        self.command = command
        self.timeout = timeout
        super().__init__(f"Command {command!r} timed out after {timeout}s")
