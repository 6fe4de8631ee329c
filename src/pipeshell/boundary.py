"""Boundary tokens and the incremental boundary scanner.

A boundary is a random marker the shell echoes after each command. The
scanner splits a growing byte buffer into lines and stops for good at the
first line that starts with the boundary.

Collision probability: the body is 12 characters from a 62-letter
alphabet, so a given output line matches a given boundary by chance with
probability 62**-12 (about 3.1e-22).
"""

from __future__ import annotations

import secrets
import string
from collections.abc import Iterator, Sequence

__all__ = [
    "BOUNDARY_SENTINEL",
    "BOUNDARY_LENGTH",
    "BoundaryScanner",
    "create_boundary",
    "create_random_string",
]

BOUNDARY_SENTINEL = "$"
BOUNDARY_LENGTH = 12

_ALPHABET = string.ascii_letters + string.digits


def create_random_string(length: int) -> str:
    """Return ``length`` random alphanumeric characters."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def create_boundary() -> str:
    """Return a fresh boundary token such as ``$Xk29aPq0LmZt$``."""
    return f"{BOUNDARY_SENTINEL}{create_random_string(BOUNDARY_LENGTH)}{BOUNDARY_SENTINEL}"


class BoundaryScanner:
    """Incremental line splitter that halts at a boundary line.

    The scanner does no I/O. Feed it bytes as they arrive and pull lines
    with ``lines()``. Once the boundary line is seen the scanner is
    finished: the boundary line is dropped and whatever follows it is kept
    untouched in ``remainder``.

    Stale boundaries passed as ``discard_until`` belong to earlier commands
    whose output was abandoned. Everything up to and including each of
    those lines is dropped, in order, before lines are emitted.

    Example:
        scanner = BoundaryScanner(b"$abc$")
        scanner.feed(b"one\\ntwo\\n$abc$\\nleft")
        list(scanner.lines())  # [b"one", b"two"]
        scanner.remainder      # b"left"
    """

    def __init__(self, boundary: bytes, discard_until: Sequence[bytes] = ()) -> None:
        if not boundary:
            raise ValueError("boundary must not be empty")
        self.boundary = boundary
        self._stale = list(discard_until)
        self._buffer = bytearray()
        self._eof = False
        self._finished = False

    @property
    def finished(self) -> bool:
        """True once the boundary line has been seen."""
        return self._finished

    @property
    def exhausted(self) -> bool:
        """True when no further line can ever be produced."""
        return self._finished or (self._eof and not self._buffer)

    @property
    def remainder(self) -> bytes:
        """Bytes not consumed yet.

        After the boundary line this is the trailing data that followed it;
        before, it is an incomplete line still waiting for its newline.
        """
        return bytes(self._buffer)

    @property
    def stale(self) -> list[bytes]:
        """Stale boundaries not reached yet."""
        return list(self._stale)

    def feed(self, data: bytes) -> None:
        if self._eof:
            raise RuntimeError("feed() called after feed_eof()")
        self._buffer.extend(data)

    def feed_eof(self) -> None:
        self._eof = True

    def lines(self) -> Iterator[bytes]:
        """Yield every line that can be produced from the buffered data."""
        while not self._finished:
            line = self._next_line()
            if line is None:
                return
            if self._stale:
                if line.startswith(self._stale[0]):
                    self._stale.pop(0)
                continue
            yield line

    def _next_line(self) -> bytes | None:
        if self._eof and not self._buffer:
            return None

        index = self._buffer.find(b"\n")
        if index >= 0:
            if not self._stale and self._buffer.startswith(self.boundary):
                # Bytes after the boundary line stay in the remainder.
                del self._buffer[: index + 1]
                self._finished = True
                return None
            line = bytes(self._buffer[:index])
            del self._buffer[: index + 1]
            return _drop_cr(line)

        if self._eof:
            line = bytes(self._buffer)
            self._buffer.clear()
            return _drop_cr(line)

        return None


def _drop_cr(line: bytes) -> bytes:
    if line.endswith(b"\r"):
        return line[:-1]
    return line
