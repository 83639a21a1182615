"""Job context for structured logging.

Transcode jobs run as asyncio tasks; each task gets its own copy of the
context, so values set here tag every log line the job writes.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)
_media_item_id: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "media_item_id", default=None
)

JOB_TAG_LENGTH = 8


@contextmanager
def job_context(
    job_id: str, media_item_id: int | None = None
) -> Generator[None, None, None]:
    """Tag log records emitted inside the block with a job and item id.

    Example:
        with job_context(job.id, job.media_item_id):
            logger.info("Encoding")  # [J:1a2b3c4d] ...
    """
    job_token = _job_id.set(job_id)
    item_token = _media_item_id.set(media_item_id)
    try:
        yield
    finally:
        _job_id.reset(job_token)
        _media_item_id.reset(item_token)


def get_job_context() -> tuple[str | None, int | None]:
    """Get current (job_id, media_item_id); either may be None."""
    return _job_id.get(), _media_item_id.get()


class JobContextFilter(logging.Filter):
    """Logging filter that injects job context into log records.

    Adds job_id and media_item_id attributes for JSON output and a compact
    job_tag such as "[J:1a2b3c4d] " for text output.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        job_id, media_item_id = get_job_context()
        record.job_id = job_id
        record.media_item_id = media_item_id
        record.job_tag = f"[J:{job_id[:JOB_TAG_LENGTH]}] " if job_id else ""
        return True
