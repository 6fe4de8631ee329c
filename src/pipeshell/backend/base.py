"""Process backend interface.

A backend starts the interpreter and hands back its process handle and the
three pipes. asyncio's ``StreamWriter`` and ``StreamReader`` already satisfy
the stream protocols below.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

__all__ = [
    "ClosableWriter",
    "CommandWriter",
    "OutputStream",
    "ProcessPipes",
    "Starter",
    "Terminable",
    "Waiter",
    "close_writer",
]


class Waiter(Protocol):
    """Handle on a running process."""

    async def wait(self) -> int: ...


@runtime_checkable
class Terminable(Protocol):
    """Handle that can force the process to stop."""

    async def terminate(self) -> None: ...


class CommandWriter(Protocol):
    """Write end of the interpreter's stdin."""

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


@runtime_checkable
class ClosableWriter(Protocol):
    def close(self) -> None: ...


class OutputStream(Protocol):
    """Read end of stdout or stderr. ``read`` returns b"" at end of stream."""

    async def read(self, n: int = -1) -> bytes: ...


@dataclass
class ProcessPipes:
    """A started process and its pipes."""

    handle: Waiter
    stdin: CommandWriter
    stdout: OutputStream
    stderr: OutputStream


class Starter(Protocol):
    """Starts interpreter processes.

    Raises:
        ProcessStartError: If the process cannot be launched
    """

    async def start_process(self, executable: str, *args: str) -> ProcessPipes: ...


def close_writer(writer: CommandWriter) -> bool:
    """Close ``writer`` if the transport supports it.

    Returns:
        True if the writer was closed
    """
    if isinstance(writer, ClosableWriter):
        writer.close()
        return True
    return False
