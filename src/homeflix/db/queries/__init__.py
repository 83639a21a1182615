"""Query functions for the Homeflix catalog.

All functions take an open sqlite3 connection and never commit.
"""

from .images import count_images, get_image, insert_image
from .libraries import get_library, insert_library, list_libraries
from .media import (
    ITEM_SORT_COLUMNS,
    count_media_items,
    get_media_item,
    get_media_item_by_path,
    get_streams_for_item,
    insert_media_item,
    insert_media_streams,
    list_media_items,
    media_item_exists,
)
from .transcode_jobs import (
    count_jobs_by_status,
    fail_interrupted_jobs,
    get_jobs_for_item,
    get_reusable_job_for_item,
    get_transcode_job,
    insert_transcode_job,
    mark_job_completed,
    mark_job_failed,
    mark_job_processing,
    update_job_progress,
)

__all__ = [
    # Libraries
    "get_library",
    "insert_library",
    "list_libraries",
    # Media items and streams
    "ITEM_SORT_COLUMNS",
    "count_media_items",
    "get_media_item",
    "get_media_item_by_path",
    "get_streams_for_item",
    "insert_media_item",
    "insert_media_streams",
    "list_media_items",
    "media_item_exists",
    # Images
    "count_images",
    "get_image",
    "insert_image",
    # Transcode jobs
    "count_jobs_by_status",
    "fail_interrupted_jobs",
    "get_jobs_for_item",
    "get_reusable_job_for_item",
    "get_transcode_job",
    "insert_transcode_job",
    "mark_job_completed",
    "mark_job_failed",
    "mark_job_processing",
    "update_job_progress",
]
