"""pipeshell environment configuration.

Environment variables:
    PIPESHELL_DIALECT: Interpreter dialect
        - powershell / pwsh / posix
        - Unset = PowerShell on Windows, posix elsewhere

    PIPESHELL_EXECUTABLE: Interpreter executable override
        - e.g. "bash" with the posix dialect

    PIPESHELL_TIMEOUT: Default per-command timeout in seconds
        - Unset/empty/0 = wait forever (default)

    PIPESHELL_EXIT_TIMEOUT: Seconds to wait for the interpreter to exit
        - Default 5.0, limited to 0.1-600
        - After this the process is terminated forcefully

    PIPESHELL_CHUNK_SIZE: Bytes per pipe read
        - Default 4096

    PIPESHELL_LOG_DEBUG: Debug logging
        - true/1/yes = on (debug log written to a temp file)
        - false/0/no = off (default, logs go to stderr)
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .dialects import Dialect, default_dialect, get_dialect

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_EXIT_TIMEOUT = 5.0
DEFAULT_CHUNK_SIZE = 4096
MAX_TIMEOUT = 86400.0
MAX_CHUNK_SIZE = 1024 * 1024


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_float(value: str | None, default: float | None, low: float, high: float) -> float | None:
    """Parse a float and clamp it to [low, high]; invalid values give the default."""
    if value is None or not value.strip():
        return default
    try:
        number = float(value)
    except ValueError:
        return default
    return max(low, min(number, high))


def _parse_timeout(value: str | None) -> float | None:
    timeout = _parse_float(value, None, 0.0, MAX_TIMEOUT)
    # 0 disables the timeout
    return timeout or None


def _parse_chunk_size(value: str | None) -> int:
    if not value:
        return DEFAULT_CHUNK_SIZE
    try:
        size = int(value)
    except ValueError:
        return DEFAULT_CHUNK_SIZE
    return max(1, min(size, MAX_CHUNK_SIZE))


def _parse_dialect(value: str | None) -> Dialect:
    if not value or not value.strip():
        return default_dialect()
    return get_dialect(value)


@dataclass
class Config:
    """pipeshell configuration.

    Attributes:
        dialect: Interpreter dialect
        executable: Interpreter executable (None = dialect default)
        timeout: Default per-command timeout in seconds (None = no limit)
        exit_timeout: Seconds to wait for a graceful exit
        chunk_size: Bytes per pipe read
        log_debug: Debug logging to a temp file
        log_file: Debug log path (set when log_debug is on)
    """

    dialect: Dialect
    executable: str | None = None
    timeout: float | None = None
    exit_timeout: float = DEFAULT_EXIT_TIMEOUT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    log_debug: bool = False
    log_file: str | None = None

    @property
    def argv(self) -> list[str]:
        return self.dialect.argv(self.executable)

    def __repr__(self) -> str:
        return (
            f"Config(dialect={self.dialect.name}, "
            f"executable={self.executable or self.dialect.executable}, "
            f"timeout={self.timeout}, "
            f"exit_timeout={self.exit_timeout}, "
            f"chunk_size={self.chunk_size}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """Return a timestamped log path under the system temp directory."""
    log_dir = Path(tempfile.gettempdir()) / "pipeshell"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"pipeshell_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from the environment.

    Raises:
        ValueError: If PIPESHELL_DIALECT names an unknown dialect
    """
    log_debug = _parse_bool(os.environ.get("PIPESHELL_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None
    executable = os.environ.get("PIPESHELL_EXECUTABLE", "").strip() or None

    return Config(
        dialect=_parse_dialect(os.environ.get("PIPESHELL_DIALECT")),
        executable=executable,
        timeout=_parse_timeout(os.environ.get("PIPESHELL_TIMEOUT")),
        exit_timeout=_parse_float(
            os.environ.get("PIPESHELL_EXIT_TIMEOUT"), DEFAULT_EXIT_TIMEOUT, 0.1, 600.0
        ),
        chunk_size=_parse_chunk_size(os.environ.get("PIPESHELL_CHUNK_SIZE")),
        log_debug=log_debug,
        log_file=log_file,
    )


# Global configuration (lazily loaded)
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload the global configuration (used by tests)."""
    global _config
    _config = load_config()
    return _config
