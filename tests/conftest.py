"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Make the src layout importable without installing
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from pipeshell.config import Config  # noqa: E402
from pipeshell.dialects import POSIX  # noqa: E402


@pytest.fixture
def posix_config() -> Config:
    """POSIX sh configuration with short timeouts."""
    return Config(dialect=POSIX, timeout=10.0, exit_timeout=2.0)
