"""Interpreter dialects.

A dialect knows how to launch an interpreter and how to phrase the
statements that echo a boundary to stdout and to stderr.

Supported dialects:
    powershell: Windows PowerShell (powershell.exe -NoExit -Command -)
    pwsh: PowerShell 7+ (pwsh -NoExit -Command -)
    posix: POSIX sh
"""

from __future__ import annotations

import sys
from dataclasses import dataclass

__all__ = [
    "Dialect",
    "POWERSHELL",
    "PWSH",
    "POSIX",
    "DIALECTS",
    "default_dialect",
    "get_dialect",
]


@dataclass(frozen=True)
class Dialect:
    """Statement syntax of one interpreter.

    Attributes:
        name: Dialect name used in configuration
        executable: Default interpreter executable
        args: Arguments that make the interpreter read commands from stdin
        newline: Line terminator sent after each augmented command
        separator: Statement separator between the command and the echoes
        stdout_echo: Template printing ``{boundary}`` on stdout
        stderr_echo: Template printing ``{boundary}`` on stderr
        exit_statement: Statement that ends the interpreter
    """

    name: str
    executable: str
    args: tuple[str, ...]
    newline: str
    separator: str
    stdout_echo: str
    stderr_echo: str
    exit_statement: str = "exit"

    def argv(self, executable: str | None = None) -> list[str]:
        return [executable or self.executable, *self.args]

    def wrap(self, command: str, stdout_boundary: str, stderr_boundary: str) -> str:
        """Build the augmented command for one invocation.

        The boundary echoes run after the command, so each boundary is the
        last thing written to its stream for this invocation.
        """
        statements = [
            command,
            self.stdout_echo.format(boundary=stdout_boundary),
            self.stderr_echo.format(boundary=stderr_boundary),
        ]
        return self.separator.join(statements) + self.newline

    def exit_command(self) -> str:
        return self.exit_statement + self.newline


POWERSHELL = Dialect(
    name="powershell",
    executable="powershell.exe",
    args=("-NoExit", "-Command", "-"),
    newline="\r\n",
    separator="; ",
    stdout_echo="echo '{boundary}'",
    stderr_echo="[Console]::Error.WriteLine('{boundary}')",
)

PWSH = Dialect(
    name="pwsh",
    executable="pwsh",
    args=("-NoExit", "-Command", "-"),
    newline="\r\n",
    separator="; ",
    stdout_echo="echo '{boundary}'",
    stderr_echo="[Console]::Error.WriteLine('{boundary}')",
)

# Statements go on separate lines so a trailing comment or "&" in the
# command cannot swallow the echoes. Command output must end with a newline:
# after "printf x" the boundary lands mid-line and is never recognised, so
# execute only returns by timing out.
POSIX = Dialect(
    name="posix",
    executable="sh",
    args=(),
    newline="\n",
    separator="\n",
    stdout_echo="printf '%s\\n' '{boundary}'",
    stderr_echo="printf '%s\\n' '{boundary}' >&2",
)

DIALECTS: dict[str, Dialect] = {d.name: d for d in (POWERSHELL, PWSH, POSIX)}


def default_dialect() -> Dialect:
    """PowerShell on Windows, POSIX sh elsewhere."""
    return POWERSHELL if sys.platform == "win32" else POSIX


def get_dialect(name: str) -> Dialect:
    """Look up a dialect by name (case-insensitive).

    Raises:
        ValueError: If the name is unknown
    """
    key = name.strip().lower()
    try:
        return DIALECTS[key]
    except KeyError:
        known = ", ".join(sorted(DIALECTS))
        raise ValueError(f"Unknown dialect {name!r} (expected one of: {known})") from None
