"""HTTP Range header parsing for byte-range file serving.

Only single ranges in bytes are honored. Multi-range and malformed headers
are ignored, so the whole file is served with 200.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_RANGE_RE = re.compile(r"^\s*bytes\s*=\s*(\d*)\s*-\s*(\d*)\s*$", re.IGNORECASE)


class RangeNotSatisfiableError(Exception):
    """Raised when a syntactically valid range lies outside the file.

    Attributes:
        header: The Range header as received.
        file_size: Size of the file in bytes.
    """

    def __init__(self, header: str, file_size: int) -> None:
        self.header = header
        self.file_size = file_size
        super().__init__(
            f"Requested range not satisfiable: {header.strip()} (file size {file_size})"
        )


@dataclass(frozen=True)
class ByteRange:
    """An inclusive byte span [start, end]."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, file_size: int) -> str:
        """Value for the Content-Range header of a 206 response."""
        return f"bytes {self.start}-{self.end}/{file_size}"


def parse_range_header(header: str | None, file_size: int) -> ByteRange | None:
    """Parse a Range header against a file size.

    Supports ``bytes=S-E``, ``bytes=S-`` (to end of file) and suffix ranges
    ``bytes=-N`` (last N bytes). An end past the file is clamped to the last
    byte.

    Args:
        header: Raw Range header value, or None.
        file_size: Size of the file in bytes.

    Returns:
        The requested ByteRange, or None if the header is absent, malformed
        or asks for several ranges.

    Raises:
        RangeNotSatisfiableError: If the start is at or past the end of the
            file, the end precedes the start, or a suffix range is empty.
    """
    if not header:
        return None
    match = _RANGE_RE.match(header)
    if match is None:
        return None

    start_text, end_text = match.groups()
    if not start_text and not end_text:
        return None

    if not start_text:
        suffix_length = int(end_text)
        if suffix_length == 0 or file_size == 0:
            raise RangeNotSatisfiableError(header, file_size)
        return ByteRange(max(0, file_size - suffix_length), file_size - 1)

    start = int(start_text)
    end = int(end_text) if end_text else file_size - 1
    if start >= file_size or end < start:
        raise RangeNotSatisfiableError(header, file_size)
    return ByteRange(start, min(end, file_size - 1))
