"""Boundary generation and BoundaryScanner tests.

Test coverage:
- Token format and uniqueness
- Line splitting with LF and CRLF
- Boundary detection (prefix only) and trailing data
- Incremental feeding and end of stream
- Discarding output of abandoned commands
"""

from __future__ import annotations

import re

import pytest

from pipeshell.boundary import (
    BOUNDARY_LENGTH,
    BoundaryScanner,
    create_boundary,
    create_random_string,
)

BOUNDARY = b"$Ab3dEf9hIjK1$"


def scan(scanner: BoundaryScanner, *chunks: bytes, eof: bool = False) -> list[bytes]:
    lines: list[bytes] = []
    for chunk in chunks:
        scanner.feed(chunk)
        lines.extend(scanner.lines())
    if eof:
        scanner.feed_eof()
        lines.extend(scanner.lines())
    return lines


# =============================================================================
# Boundary Generator Tests
# =============================================================================


class TestCreateBoundary:
    """Test boundary token generation."""

    def test_format(self):
        boundary = create_boundary()
        assert re.fullmatch(r"\$[A-Za-z0-9]{12}\$", boundary)

    def test_tokens_are_unique(self):
        tokens = {create_boundary() for _ in range(1000)}
        assert len(tokens) == 1000

    def test_random_string_length(self):
        assert len(create_random_string(BOUNDARY_LENGTH)) == BOUNDARY_LENGTH
        assert create_random_string(0) == ""

    def test_random_string_alphabet(self):
        assert create_random_string(200).isalnum()


# =============================================================================
# Scanner Tests
# =============================================================================


class TestBoundaryScanner:
    """Test line splitting and boundary detection."""

    def test_lines_without_boundary_never_finish(self):
        scanner = BoundaryScanner(BOUNDARY)
        lines = scan(scanner, b"one\ntwo\nthree\n")

        assert lines == [b"one", b"two", b"three"]
        assert not scanner.finished
        assert not scanner.exhausted

    def test_stops_at_boundary_and_keeps_trailing_data(self):
        scanner = BoundaryScanner(BOUNDARY)
        lines = scan(scanner, b"L1\nL2\nL3\n" + BOUNDARY + b"\ngarbage\nmore")

        assert lines == [b"L1", b"L2", b"L3"]
        assert scanner.finished
        assert scanner.remainder == b"garbage\nmore"

    def test_boundary_line_with_trailing_content(self):
        scanner = BoundaryScanner(BOUNDARY)
        lines = scan(scanner, b"out\n" + BOUNDARY + b"   extra\n")

        assert lines == [b"out"]
        assert scanner.finished
        assert scanner.remainder == b""

    def test_boundary_inside_line_is_plain_output(self):
        scanner = BoundaryScanner(BOUNDARY)
        lines = scan(scanner, b"x " + BOUNDARY + b"\n")

        assert lines == [b"x " + BOUNDARY]
        assert not scanner.finished

    def test_unterminated_boundary_waits_for_newline(self):
        scanner = BoundaryScanner(BOUNDARY)
        assert scan(scanner, b"a\n" + BOUNDARY) == [b"a"]
        assert not scanner.finished

        assert scan(scanner, b"\n") == []
        assert scanner.finished

    def test_boundary_split_across_chunks(self):
        scanner = BoundaryScanner(BOUNDARY)
        lines = scan(scanner, b"hel", b"lo\n$Ab3d", b"Ef9hIjK1$\r", b"\n")

        assert lines == [b"hello"]
        assert scanner.finished

    def test_crlf_is_normalised(self):
        scanner = BoundaryScanner(BOUNDARY)
        lines = scan(scanner, b"one\r\ntwo\r\n" + BOUNDARY + b"\r\n")

        assert lines == [b"one", b"two"]
        assert scanner.finished

    def test_empty_lines_are_kept(self):
        scanner = BoundaryScanner(BOUNDARY)
        lines = scan(scanner, b"\n\nx\n\n" + BOUNDARY + b"\n")

        assert lines == [b"", b"", b"x", b""]

    def test_final_unterminated_line_at_eof(self):
        scanner = BoundaryScanner(BOUNDARY)
        lines = scan(scanner, b"one\npartial", eof=True)

        assert lines == [b"one", b"partial"]
        assert not scanner.finished
        assert scanner.exhausted

    def test_eof_without_data(self):
        scanner = BoundaryScanner(BOUNDARY)
        assert scan(scanner, eof=True) == []
        assert scanner.exhausted
        assert not scanner.finished

    def test_no_lines_after_finish(self):
        scanner = BoundaryScanner(BOUNDARY)
        scan(scanner, BOUNDARY + b"\n")
        assert scan(scanner, b"late\n") == []
        assert scanner.remainder == b"late\n"

    def test_feed_after_eof_raises(self):
        scanner = BoundaryScanner(BOUNDARY)
        scanner.feed_eof()
        with pytest.raises(RuntimeError):
            scanner.feed(b"x")

    def test_empty_boundary_rejected(self):
        with pytest.raises(ValueError):
            BoundaryScanner(b"")


# =============================================================================
# Stale Boundary Tests
# =============================================================================


class TestDiscardUntil:
    """Test skipping output of abandoned commands."""

    def test_discards_through_stale_boundary(self):
        stale = b"$OldOldOld123$"
        scanner = BoundaryScanner(BOUNDARY, discard_until=[stale])
        lines = scan(
            scanner,
            b"late output\n" + stale + b"\n" + b"fresh\n" + BOUNDARY + b"\n",
        )

        assert lines == [b"fresh"]
        assert scanner.finished
        assert scanner.stale == []

    def test_stale_boundaries_in_order(self):
        first = b"$First0000000$"
        second = b"$Second000000$"
        scanner = BoundaryScanner(BOUNDARY, discard_until=[first, second])

        assert scan(scanner, b"a\n" + first + b"\nb\n") == []
        assert scanner.stale == [second]

        assert scan(scanner, second + b"\nc\n" + BOUNDARY + b"\n") == [b"c"]
        assert scanner.finished

    def test_current_boundary_ignored_while_discarding(self):
        stale = b"$OldOldOld123$"
        scanner = BoundaryScanner(BOUNDARY, discard_until=[stale])

        assert scan(scanner, BOUNDARY + b"\n") == []
        assert not scanner.finished
