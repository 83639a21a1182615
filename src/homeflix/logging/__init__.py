"""Structured logging module for Homeflix.

Provides configurable logging with JSON format support, file rotation and
per-job context tagging.
"""

from homeflix.logging.config import configure_logging
from homeflix.logging.context import JobContextFilter, get_job_context, job_context
from homeflix.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "JobContextFilter",
    "configure_logging",
    "get_job_context",
    "job_context",
]
