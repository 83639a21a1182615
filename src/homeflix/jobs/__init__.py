"""Segmented transcode job management."""

from homeflix.jobs.exceptions import (
    EncodeError,
    InvalidJobTransitionError,
    TranscodeJobError,
)
from homeflix.jobs.transcode import TranscodeJobManager, iter_stderr_lines

__all__ = [
    "EncodeError",
    "InvalidJobTransitionError",
    "TranscodeJobError",
    "TranscodeJobManager",
    "iter_stderr_lines",
]
