"""Persistent interpreter sessions.

pipeshell session module v0.1.0

A ``Shell`` keeps one interpreter process alive and runs commands on it one
at a time. Each command is followed by two statements that echo fresh
boundary tokens, one to stdout and one to stderr. Two readers scan the pipes
concurrently until they see their boundary, so every command gets exactly
the output it produced on each stream.

Key design points:
- Commands are serialised by a lock; the readers live only for one command
- Read failures and truncated captures are raised, never swallowed
- A timed-out command leaves the session usable: its late output is
  skipped by the next command
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

import anyio

from .backend.base import ProcessPipes, Starter, Terminable, close_writer
from .backend.local import LocalBackend
from .boundary import BoundaryScanner, create_boundary
from .config import DEFAULT_EXIT_TIMEOUT, Config, get_config
from .dialects import Dialect, get_dialect
from .errors import (
    CommandTimeoutError,
    CommandWriteError,
    ProcessStartError,
    SessionClosedError,
    StreamReadError,
)
from .reader import DEFAULT_CHUNK_SIZE, ReadResult, read_until_boundary

__all__ = [
    "CommandResult",
    "CommandTrace",
    "Shell",
    "ShellState",
    "open_shell",
]

logger = logging.getLogger(__name__)

STREAMS = ("stdout", "stderr")


class ShellState(Enum):
    """Lifecycle state of a shell."""

    RUNNING = "running"
    CLOSED = "closed"


class CommandResult(NamedTuple):
    """Captured output of one command."""

    stdout: str
    stderr: str


@dataclass(frozen=True)
class CommandTrace:
    """Raw bytes read from each pipe for the most recent command.

    Kept for diagnostics only.
    """

    command: str
    stdout: bytes
    stderr: bytes


class Shell:
    """A running interpreter driven through its stdin, stdout and stderr.

    Use ``open_shell`` to start one.

    Example:
        async with await open_shell() as shell:
            out, err = await shell.execute("echo hello")

    Attributes:
        dialect: Interpreter dialect used to build commands
        default_timeout: Timeout applied when ``execute`` gets none
        exit_timeout: Seconds ``exit`` waits before terminating forcefully
        chunk_size: Bytes per pipe read
    """

    def __init__(
        self,
        pipes: ProcessPipes,
        dialect: Dialect,
        *,
        default_timeout: float | None = None,
        exit_timeout: float = DEFAULT_EXIT_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.dialect = dialect
        self.default_timeout = default_timeout
        self.exit_timeout = exit_timeout
        self.chunk_size = chunk_size

        self._pipes: ProcessPipes | None = pipes
        self._state = ShellState.RUNNING
        self._lock = anyio.Lock()
        self._last_trace: CommandTrace | None = None
        # Per-stream carry-over between commands
        self._pending: dict[str, bytes] = {name: b"" for name in STREAMS}
        self._stale: dict[str, list[bytes]] = {name: [] for name in STREAMS}

    @property
    def state(self) -> ShellState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is ShellState.CLOSED

    @property
    def pid(self) -> int | None:
        if self._pipes is None:
            return None
        return getattr(self._pipes.handle, "pid", None)

    @property
    def last_trace(self) -> CommandTrace | None:
        return self._last_trace

    async def __aenter__(self) -> "Shell":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if not self.closed:
            await self.exit()

    async def execute(self, command: str, *, timeout: float | None = None) -> CommandResult:
        """Run ``command`` and return what it wrote to stdout and stderr.

        The timeout covers the whole call: waiting for an earlier command
        to finish, sending this one and reading both streams.

        Output must end with a newline. With the POSIX dialect a command
        such as ``printf x`` leaves the boundary mid-line, where it is not
        recognised, so the call only returns by timing out.

        Args:
            command: Command text, passed to the interpreter as is
            timeout: Seconds the whole call may take (None = default_timeout)

        Returns:
            CommandResult(stdout, stderr), lines joined with "\\n"

        Raises:
            SessionClosedError: If the shell has exited
            CommandWriteError: If stdin rejected the command
            StreamReadError: If a pipe failed or closed before the boundary
            CommandTimeoutError: If the command did not finish in time
        """
        if self.closed:
            raise SessionClosedError(command)

        limit = timeout if timeout is not None else self.default_timeout
        try:
            with anyio.fail_after(limit):
                async with self._lock:
                    pipes = self._pipes
                    if pipes is None:
                        raise SessionClosedError(command)
                    return await self._run(pipes, command)
        except TimeoutError:
            logger.warning(f"Command timed out after {limit}s: {command!r}")
            raise CommandTimeoutError(command, limit) from None

    async def _run(self, pipes: ProcessPipes, command: str) -> CommandResult:
        stdout_boundary = create_boundary()
        stderr_boundary = create_boundary()
        while stderr_boundary == stdout_boundary:
            stderr_boundary = create_boundary()

        full = self.dialect.wrap(command, stdout_boundary, stderr_boundary)
        try:
            pipes.stdin.write(full.encode("utf-8"))
        except OSError as e:
            logger.error(f"Could not send command {command!r}: {e}")
            raise CommandWriteError(command) from e

        # Written bytes are delivered even if the drain below is cancelled,
        # so the boundaries are tracked from here on.
        scanners = {
            "stdout": self._new_scanner("stdout", stdout_boundary),
            "stderr": self._new_scanner("stderr", stderr_boundary),
        }
        try:
            try:
                await pipes.stdin.drain()
            except OSError as e:
                logger.error(f"Could not send command {command!r}: {e}")
                raise CommandWriteError(command) from e
            results = await self._read_outputs(pipes, scanners)
        finally:
            self._carry_over(scanners)

        self._last_trace = CommandTrace(
            command=command,
            stdout=results["stdout"].raw,
            stderr=results["stderr"].raw,
        )

        for name in STREAMS:
            result = results[name]
            if not result.ok:
                reason = str(result.error) if result.error else "end of stream before boundary"
                raise StreamReadError(name, command, result.text, reason) from result.error

        return CommandResult(results["stdout"].text, results["stderr"].text)

    async def _read_outputs(
        self, pipes: ProcessPipes, scanners: dict[str, BoundaryScanner]
    ) -> dict[str, ReadResult]:
        """Run one reader per stream and wait for both."""
        streams = {"stdout": pipes.stdout, "stderr": pipes.stderr}
        results: dict[str, ReadResult] = {}

        async def run_reader(name: str) -> None:
            results[name] = await read_until_boundary(
                streams[name],
                scanners[name],
                name=name,
                chunk_size=self.chunk_size,
            )

        async with anyio.create_task_group() as tg:
            for name in STREAMS:
                tg.start_soon(run_reader, name)
        return results

    async def exit(self, *, timeout: float | None = None) -> int | None:
        """Ask the interpreter to exit and wait for it.

        Falls back to forced termination if the interpreter is still
        running after ``timeout`` (default exit_timeout) seconds.

        Returns:
            The exit code, or None if it could not be determined

        Raises:
            SessionClosedError: If the shell has already exited
        """
        if self.closed:
            raise SessionClosedError()

        async with self._lock:
            pipes = self._pipes
            if pipes is None:
                raise SessionClosedError()

            try:
                pipes.stdin.write(self.dialect.exit_command().encode("utf-8"))
                await pipes.stdin.drain()
            except OSError as e:
                logger.debug(f"Could not send exit statement: {e}")

            # Some transports cannot close stdin; the interpreter then only
            # sees the exit statement.
            if close_writer(pipes.stdin):
                logger.debug("Closed interpreter stdin")

            limit = timeout if timeout is not None else self.exit_timeout
            try:
                with anyio.fail_after(limit):
                    returncode: int | None = await pipes.handle.wait()
            except TimeoutError:
                logger.warning(f"Interpreter did not exit within {limit}s, terminating")
                returncode = await self._force_stop(pipes)
            finally:
                self._close()

            logger.debug(f"Interpreter exited returncode={returncode}")
            return returncode

    async def kill(self) -> int | None:
        """Terminate the interpreter without asking it to exit.

        Does not wait for a running ``execute``: killing the process ends
        its pipes, which makes that command fail with StreamReadError.

        Raises:
            SessionClosedError: If the shell has already exited
        """
        pipes = self._pipes
        if pipes is None:
            raise SessionClosedError()

        self._close()
        return await self._force_stop(pipes)

    def _new_scanner(self, name: str, boundary: str) -> BoundaryScanner:
        scanner = BoundaryScanner(boundary.encode("utf-8"), discard_until=self._stale[name])
        if self._pending[name]:
            scanner.feed(self._pending[name])
        return scanner

    def _carry_over(self, scanners: dict[str, BoundaryScanner]) -> None:
        """Keep unread bytes and abandoned boundaries for the next command."""
        for name, scanner in scanners.items():
            self._pending[name] = scanner.remainder
            if scanner.finished:
                self._stale[name] = []
            else:
                self._stale[name] = scanner.stale + [scanner.boundary]

    async def _force_stop(self, pipes: ProcessPipes) -> int | None:
        handle = pipes.handle
        if not isinstance(handle, Terminable):
            logger.warning(f"Backend handle {type(handle).__name__} cannot be terminated")
            return None

        await handle.terminate()
        returncode = None
        with anyio.move_on_after(self.exit_timeout):
            returncode = await handle.wait()
        return returncode

    def _close(self) -> None:
        self._state = ShellState.CLOSED
        self._pipes = None
        self._pending = {name: b"" for name in STREAMS}
        self._stale = {name: [] for name in STREAMS}


async def open_shell(
    backend: Starter | None = None,
    *,
    dialect: Dialect | str | None = None,
    executable: str | None = None,
    config: Config | None = None,
) -> Shell:
    """Start an interpreter and return a Shell attached to it.

    Args:
        backend: Process backend (default LocalBackend)
        dialect: Dialect or dialect name (default from config)
        executable: Interpreter executable override
        config: Configuration (default: global config from the environment)

    Raises:
        ProcessStartError: If the backend cannot start the interpreter
    """
    config = config or get_config()
    if isinstance(dialect, str):
        dialect = get_dialect(dialect)
    if dialect is None:
        dialect = config.dialect
        argv = config.argv if executable is None else dialect.argv(executable)
    else:
        argv = dialect.argv(executable)
    backend = backend or LocalBackend()

    try:
        pipes = await backend.start_process(*argv)
    except OSError as e:
        raise ProcessStartError(argv[0], argv[1:]) from e

    logger.info(f"Started {dialect.name} shell: {argv}")
    return Shell(
        pipes,
        dialect,
        default_timeout=config.timeout,
        exit_timeout=config.exit_timeout,
        chunk_size=config.chunk_size,
    )
