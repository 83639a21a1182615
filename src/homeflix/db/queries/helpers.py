"""Row mapping functions shared by the query modules."""

import sqlite3

from homeflix.db.types import (
    ImageKind,
    ImageRecord,
    LibraryRecord,
    LibraryType,
    MediaItemRecord,
    MediaStreamRecord,
    StreamKind,
    TranscodeJobRecord,
    TranscodeStatus,
)

MEDIA_ITEM_COLUMNS = """
    id, library_id, type, path, title, year, duration_seconds,
    container_format, video_codec, resolution, width, height, bitrate,
    audio_channels_default, chapters_json, added_at, updated_at
"""

TRANSCODE_JOB_COLUMNS = """
    id, media_item_id, status, progress_percent, output_dir,
    playlist_filename, error_message, created_at, started_at, completed_at
"""


def _row_to_library(row: sqlite3.Row) -> LibraryRecord:
    return LibraryRecord(
        id=row["id"],
        name=row["name"],
        type=LibraryType(row["type"]),
        root_path=row["root_path"],
        created_at=row["created_at"],
    )


def _row_to_media_item(row: sqlite3.Row) -> MediaItemRecord:
    """Convert a database row to MediaItemRecord using named columns.

    Args:
        row: sqlite3.Row from a SELECT of MEDIA_ITEM_COLUMNS.

    Returns:
        MediaItemRecord instance populated from the row.
    """
    return MediaItemRecord(
        id=row["id"],
        library_id=row["library_id"],
        type=row["type"],
        path=row["path"],
        title=row["title"],
        year=row["year"],
        duration_seconds=row["duration_seconds"],
        container_format=row["container_format"],
        video_codec=row["video_codec"],
        resolution=row["resolution"],
        width=row["width"],
        height=row["height"],
        bitrate=row["bitrate"],
        audio_channels_default=row["audio_channels_default"],
        chapters_json=row["chapters_json"],
        added_at=row["added_at"],
        updated_at=row["updated_at"],
    )


def _row_to_media_stream(row: sqlite3.Row) -> MediaStreamRecord:
    return MediaStreamRecord(
        id=row["id"],
        media_item_id=row["media_item_id"],
        stream_index=row["stream_index"],
        kind=StreamKind(row["kind"]),
        codec=row["codec"],
        language=row["language"],
        label=row["label"],
        channels=row["channels"],
        is_default=row["is_default"] == 1,
    )


def _row_to_image(row: sqlite3.Row) -> ImageRecord:
    return ImageRecord(
        id=row["id"],
        media_item_id=row["media_item_id"],
        kind=ImageKind(row["kind"]),
        path=row["path"],
        size_class=row["size_class"],
        created_at=row["created_at"],
    )


def _row_to_transcode_job(row: sqlite3.Row) -> TranscodeJobRecord:
    """Convert a database row to TranscodeJobRecord using named columns.

    Args:
        row: sqlite3.Row from a SELECT of TRANSCODE_JOB_COLUMNS.

    Returns:
        TranscodeJobRecord instance populated from the row.
    """
    return TranscodeJobRecord(
        id=row["id"],
        media_item_id=row["media_item_id"],
        status=TranscodeStatus(row["status"]),
        progress_percent=row["progress_percent"],
        output_dir=row["output_dir"],
        playlist_filename=row["playlist_filename"],
        error_message=row["error_message"],
        created_at=row["created_at"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
    )
