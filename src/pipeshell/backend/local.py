"""Local process backend with process isolation and reliable termination.

pipeshell backend module v0.1.0

This module provides:
- Interpreter processes started with all three pipes attached
- Cross-platform isolation (new session/process group)
- Forced termination with a grace period (SIGTERM -> timeout -> SIGKILL)

Key design points:
- POSIX: start_new_session=True to create new process group
- Windows: CREATE_NEW_PROCESS_GROUP for signal isolation
- Termination targets the process group, not just the interpreter
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..errors import ProcessStartError
from .base import ProcessPipes

__all__ = [
    "IS_WINDOWS",
    "LocalBackend",
    "LocalHandle",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"

# Default timeouts
DEFAULT_TERM_TIMEOUT = 2.0  # seconds to wait after SIGTERM
DEFAULT_KILL_TIMEOUT = 1.0  # seconds to wait after SIGKILL


class LocalHandle:
    """Handle on a local interpreter process.

    Attributes:
        process: The underlying asyncio subprocess
        term_timeout: Seconds to wait after the graceful signal
        kill_timeout: Seconds to wait after the forced kill
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        term_timeout: float = DEFAULT_TERM_TIMEOUT,
        kill_timeout: float = DEFAULT_KILL_TIMEOUT,
    ) -> None:
        self.process = process
        self.term_timeout = term_timeout
        self.kill_timeout = kill_timeout

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    async def wait(self) -> int:
        return await self.process.wait()

    async def terminate(self) -> None:
        """Terminate the process gracefully, then forcefully if needed.

        Termination strategy:
        1. Send SIGTERM (or CTRL_BREAK_EVENT on Windows)
        2. Wait up to term_timeout for graceful exit
        3. If still running, send SIGKILL (or kill() on Windows)
        4. Wait up to kill_timeout for forced exit
        """
        if self.returncode is not None:
            return

        process = self.process
        pid = process.pid
        logger.debug(f"Terminating interpreter pid={pid}")

        try:
            # Step 1: Graceful termination
            if IS_WINDOWS:
                self._windows_terminate()
            else:
                self._posix_signal(signal.SIGTERM)

            # Step 2: Wait for graceful exit
            try:
                await asyncio.wait_for(process.wait(), timeout=self.term_timeout)
                logger.debug(
                    f"Interpreter terminated gracefully pid={pid} "
                    f"returncode={process.returncode}"
                )
                return
            except asyncio.TimeoutError:
                pass

            # Step 3: Force kill
            logger.debug(f"Force killing interpreter pid={pid}")
            if IS_WINDOWS:
                process.kill()
            else:
                self._posix_signal(signal.SIGKILL)

            # Step 4: Wait for forced exit
            try:
                await asyncio.wait_for(process.wait(), timeout=self.kill_timeout)
                logger.debug(
                    f"Interpreter killed pid={pid} "
                    f"returncode={process.returncode}"
                )
            except asyncio.TimeoutError:
                logger.warning(f"Interpreter did not exit after kill pid={pid}")

        except ProcessLookupError:
            # Process already exited
            logger.debug(f"Interpreter already exited pid={pid}")

    def _posix_signal(self, sig: signal.Signals) -> None:
        """Send ``sig`` to the interpreter's process group."""
        try:
            # Process group ID equals pid because of start_new_session
            pgid = os.getpgid(self.process.pid)
            os.killpg(pgid, sig)
            logger.debug(f"Sent {sig.name} to process group pgid={pgid}")
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug(f"killpg failed, falling back to direct signal: {e}")
            self.process.send_signal(sig)

    def _windows_terminate(self) -> None:
        """Send CTRL_BREAK_EVENT to the process group on Windows."""
        try:
            os.kill(self.process.pid, signal.CTRL_BREAK_EVENT)
            logger.debug(f"Sent CTRL_BREAK_EVENT to pid={self.process.pid}")
        except OSError as e:
            logger.debug(f"CTRL_BREAK_EVENT failed, falling back: {e}")
            self.process.terminate()


@dataclass
class LocalBackend:
    """Starts interpreters as local subprocesses.

    Example:
        backend = LocalBackend(cwd=Path("/workspace"))
        pipes = await backend.start_process("sh")
        pipes.stdin.write(b"echo hi\\n")
    """

    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    term_timeout: float = DEFAULT_TERM_TIMEOUT
    kill_timeout: float = DEFAULT_KILL_TIMEOUT

    async def start_process(self, executable: str, *args: str) -> ProcessPipes:
        """Start ``executable`` with stdin, stdout and stderr piped.

        Raises:
            ProcessStartError: If the executable cannot be launched
        """
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
                **self._build_subprocess_kwargs(),
            )
        except OSError as e:
            logger.error(f"Failed to start {executable}: {e}")
            raise ProcessStartError(executable, args) from e

        logger.debug(f"Started interpreter pid={process.pid} argv={[executable, *args]}")

        assert process.stdin is not None
        assert process.stdout is not None
        assert process.stderr is not None
        return ProcessPipes(
            handle=LocalHandle(process, self.term_timeout, self.kill_timeout),
            stdin=process.stdin,
            stdout=process.stdout,
            stderr=process.stderr,
        )

    def _build_subprocess_kwargs(self) -> dict[str, Any]:
        """Build platform-specific subprocess kwargs."""
        kwargs: dict[str, Any] = {}

        if self.env is not None:
            kwargs["env"] = dict(self.env)

        if IS_WINDOWS:
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            # POSIX: start_new_session (equivalent to setsid)
            kwargs["start_new_session"] = True

        return kwargs
