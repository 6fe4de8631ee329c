"""Stream reader tests.

Test coverage:
- Joining captured lines
- Carry-over data already in the scanner
- Raw bytes capture
- End of stream before the boundary
- Read errors reported, not raised
"""

from __future__ import annotations

import asyncio

import pytest

from pipeshell.boundary import BoundaryScanner
from pipeshell.config import DEFAULT_CHUNK_SIZE
from pipeshell.reader import read_until_boundary

BOUNDARY = "$Zz9Yy8Xx7Ww6$"


class ChunkStream:
    """Fake pipe returning predefined chunks, then EOF or an error."""

    def __init__(self, chunks: list[bytes], error: OSError | None = None) -> None:
        self.chunks = list(chunks)
        self.error = error
        self.reads = 0
        self.sizes: list[int] = []

    async def read(self, n: int = -1) -> bytes:
        self.reads += 1
        self.sizes.append(n)
        await asyncio.sleep(0)
        if self.chunks:
            return self.chunks.pop(0)
        if self.error is not None:
            raise self.error
        return b""


def make_scanner(prefix: bytes = b"") -> BoundaryScanner:
    scanner = BoundaryScanner(BOUNDARY.encode())
    if prefix:
        scanner.feed(prefix)
    return scanner


class TestReadUntilBoundary:
    """Test reading one stream up to its boundary."""

    @pytest.mark.asyncio
    async def test_joins_lines(self):
        stream = ChunkStream([b"one\ntw", b"o\r\n", BOUNDARY.encode() + b"\r\n"])
        result = await read_until_boundary(stream, make_scanner(), name="stdout")

        assert result.text == "one\ntwo"
        assert result.finished
        assert result.error is None
        assert result.ok

    @pytest.mark.asyncio
    async def test_empty_output(self):
        stream = ChunkStream([BOUNDARY.encode() + b"\n"])
        result = await read_until_boundary(stream, make_scanner())

        assert result.text == ""
        assert result.ok

    @pytest.mark.asyncio
    async def test_raw_bytes_captured(self):
        chunks = [b"a\n", BOUNDARY.encode() + b"\n"]
        stream = ChunkStream(chunks)
        result = await read_until_boundary(stream, make_scanner())

        assert result.raw == b"".join(chunks)

    @pytest.mark.asyncio
    async def test_does_not_read_past_boundary(self):
        stream = ChunkStream([BOUNDARY.encode() + b"\nnext\n", b"never read\n"])
        scanner = make_scanner()
        result = await read_until_boundary(stream, scanner)

        assert result.ok
        assert stream.reads == 1
        assert scanner.remainder == b"next\n"

    @pytest.mark.asyncio
    async def test_prefix_containing_boundary_skips_reading(self):
        stream = ChunkStream([b"unused\n"])
        scanner = make_scanner(b"carried\n" + BOUNDARY.encode() + b"\n")
        result = await read_until_boundary(stream, scanner)

        assert result.text == "carried"
        assert result.ok
        assert stream.reads == 0

    @pytest.mark.asyncio
    async def test_prefix_joined_with_new_data(self):
        stream = ChunkStream([b"tail\n", BOUNDARY.encode() + b"\n"])
        result = await read_until_boundary(stream, make_scanner(b"head-"))

        assert result.text == "head-tail"

    @pytest.mark.asyncio
    async def test_eof_before_boundary(self):
        stream = ChunkStream([b"one\npartial"])
        result = await read_until_boundary(stream, make_scanner())

        assert result.text == "one\npartial"
        assert not result.finished
        assert result.error is None
        assert not result.ok

    @pytest.mark.asyncio
    async def test_read_error_is_reported(self):
        error = ConnectionResetError("pipe broke")
        stream = ChunkStream([b"before\n"], error=error)
        result = await read_until_boundary(stream, make_scanner(), name="stderr")

        assert result.error is error
        assert result.text == "before"
        assert not result.ok

    @pytest.mark.asyncio
    async def test_invalid_utf8_replaced(self):
        stream = ChunkStream([b"\xff\xfeok\n", BOUNDARY.encode() + b"\n"])
        result = await read_until_boundary(stream, make_scanner())

        assert result.text.endswith("ok")
        assert "�" in result.text

    @pytest.mark.asyncio
    async def test_default_chunk_size_matches_config(self):
        stream = ChunkStream([BOUNDARY.encode() + b"\n"])
        await read_until_boundary(stream, make_scanner())

        assert stream.sizes == [DEFAULT_CHUNK_SIZE]
