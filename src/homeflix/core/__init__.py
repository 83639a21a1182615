"""Helpers shared by every layer: UTC timestamps and subprocess calls."""

from homeflix.core.datetime_utils import (
    current_year,
    parse_iso_timestamp,
    utc_now_iso,
)
from homeflix.core.subprocess_utils import run_command, stderr_tail

__all__ = [
    "current_year",
    "parse_iso_timestamp",
    "run_command",
    "stderr_tail",
    "utc_now_iso",
]
