"""Process backends.

A backend launches the interpreter and returns its handle and pipes.
"""

from __future__ import annotations

from .base import ProcessPipes, Starter, Waiter
from .local import LocalBackend, LocalHandle

__all__ = [
    "LocalBackend",
    "LocalHandle",
    "ProcessPipes",
    "Starter",
    "Waiter",
]
