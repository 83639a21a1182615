"""HTTP media streaming: Direct Play and live transcode."""

from homeflix.streaming.controller import (
    CONTAINER_MIME_TYPES,
    TRANSCODING_HEADER,
    StreamController,
    StreamOutcome,
    mime_type_for,
)
from homeflix.streaming.ranges import (
    ByteRange,
    RangeNotSatisfiableError,
    parse_range_header,
)

__all__ = [
    "CONTAINER_MIME_TYPES",
    "TRANSCODING_HEADER",
    "ByteRange",
    "RangeNotSatisfiableError",
    "StreamController",
    "StreamOutcome",
    "mime_type_for",
    "parse_range_header",
]
