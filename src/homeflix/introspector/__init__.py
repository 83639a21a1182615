"""Introspector module for Homeflix.

- MetadataProbe: Protocol defining the probe interface
- FFprobeProbe: Production implementation using ffprobe
- StubProbe: In-memory implementation for testing
- MediaProbeError: Exception for probe failures
"""

from homeflix.introspector.ffprobe import FFprobeProbe
from homeflix.introspector.formatters import format_human, format_json
from homeflix.introspector.interface import MediaProbeError, MetadataProbe
from homeflix.introspector.parsers import parse_ffprobe_output
from homeflix.introspector.stub import StubProbe

__all__ = [
    "FFprobeProbe",
    "MediaProbeError",
    "MetadataProbe",
    "StubProbe",
    "format_human",
    "format_json",
    "parse_ffprobe_output",
]
