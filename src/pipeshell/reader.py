"""Stream reader: one boundary scan over one output pipe.

Each command runs two of these concurrently, one for stdout and one for
stderr. The reader owns its line and raw-byte buffers for the duration of
the command and hands them back in a ``ReadResult``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .backend.base import OutputStream
from .boundary import BoundaryScanner
from .config import DEFAULT_CHUNK_SIZE

__all__ = ["DEFAULT_CHUNK_SIZE", "ReadResult", "read_until_boundary"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadResult:
    """Outcome of one stream read.

    Attributes:
        text: Captured lines joined with "\\n", boundary line excluded
        raw: Every byte read from the pipe during this read (diagnostics)
        finished: True if the boundary line was seen
        error: The read error, if the pipe failed
    """

    text: str
    raw: bytes
    finished: bool = False
    error: OSError | None = None

    @property
    def ok(self) -> bool:
        return self.finished and self.error is None


async def read_until_boundary(
    stream: OutputStream,
    scanner: BoundaryScanner,
    *,
    name: str = "stream",
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> ReadResult:
    """Feed ``stream`` into ``scanner`` until its boundary line appears.

    Data already fed to the scanner (bytes left over from the previous
    command) is scanned before the pipe is read. Reading stops at the
    boundary line or at end of stream.

    Args:
        stream: Pipe to read from
        scanner: Scanner for this command's boundary on this stream
        name: Stream name used in log messages
        chunk_size: Maximum bytes per read

    Returns:
        ReadResult. Read errors are logged and reported in the result,
        never raised.
    """
    lines: list[bytes] = list(scanner.lines())
    raw = bytearray()
    error: OSError | None = None

    try:
        while not scanner.exhausted:
            chunk = await stream.read(chunk_size)
            if not chunk:
                logger.debug(f"{name}: end of stream before boundary")
                scanner.feed_eof()
            else:
                raw.extend(chunk)
                scanner.feed(chunk)
            lines.extend(scanner.lines())
    except OSError as e:
        logger.error(f"{name}: read failed: {e}")
        error = e

    logger.debug(
        f"{name}: captured {len(lines)} lines, {len(raw)} raw bytes, "
        f"finished={scanner.finished}"
    )
    return ReadResult(
        text=b"\n".join(lines).decode("utf-8", errors="replace"),
        raw=bytes(raw),
        finished=scanner.finished,
        error=error,
    )
