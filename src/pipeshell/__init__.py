"""pipeshell - persistent interpreter sessions over stdin/stdout/stderr.

Each command's output is delimited by random boundary markers echoed after
it, so stdout and stderr can be captured per command while the interpreter
process stays alive.

Environment variables:
    PIPESHELL_DIALECT: Interpreter dialect (powershell/pwsh/posix)
    PIPESHELL_TIMEOUT: Default per-command timeout in seconds
    PIPESHELL_LOG_DEBUG: Debug log to a temp file (default false)

Usage:
    async with await open_shell() as shell:
        out, err = await shell.execute("echo hello")
"""

__version__ = "0.1.0"

from .errors import (
    CommandTimeoutError,
    CommandWriteError,
    ProcessStartError,
    SessionClosedError,
    ShellError,
    StreamReadError,
)
from .session import CommandResult, Shell, ShellState, open_shell

__all__ = [
    "__version__",
    "CommandResult",
    "CommandTimeoutError",
    "CommandWriteError",
    "ProcessStartError",
    "SessionClosedError",
    "Shell",
    "ShellError",
    "ShellState",
    "StreamReadError",
    "open_shell",
]
