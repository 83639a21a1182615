"""Media item and media stream operations.

The scanner writes an item and its streams inside one pool transaction, so
these functions never commit on their own.
"""

import sqlite3

from homeflix.db.types import MediaItemRecord, MediaStreamRecord

from .helpers import MEDIA_ITEM_COLUMNS, _row_to_media_item, _row_to_media_stream

# Sort key accepted by list_media_items -> ORDER BY expression
ITEM_SORT_COLUMNS = {
    "date_added": "added_at",
    "title": "title COLLATE NOCASE",
    "year": "year",
}


def insert_media_item(conn: sqlite3.Connection, record: MediaItemRecord) -> int:
    """Insert a new media item.

    Args:
        conn: Database connection.
        record: Media item to insert (id is ignored).

    Returns:
        The ID of the inserted item.

    Raises:
        sqlite3.IntegrityError: If an item with the same path exists.

    Note:
        This function does NOT commit. Caller must manage transactions.
    """
    cursor = conn.execute(
        """
        INSERT INTO media_items (
            library_id, type, path, title, year, duration_seconds,
            container_format, video_codec, resolution, width, height, bitrate,
            audio_channels_default, chapters_json, added_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            record.library_id,
            record.type,
            record.path,
            record.title,
            record.year,
            record.duration_seconds,
            record.container_format,
            record.video_codec,
            record.resolution,
            record.width,
            record.height,
            record.bitrate,
            record.audio_channels_default,
            record.chapters_json,
            record.added_at,
            record.updated_at,
        ),
    )
    return cursor.lastrowid


def insert_media_streams(
    conn: sqlite3.Connection, streams: list[MediaStreamRecord]
) -> None:
    """Insert the audio and subtitle streams of one media item.

    Note:
        This function does NOT commit. Caller must manage transactions.
    """
    conn.executemany(
        """
        INSERT INTO media_streams (
            media_item_id, stream_index, kind, codec, language, label,
            channels, is_default
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                s.media_item_id,
                s.stream_index,
                s.kind.value,
                s.codec,
                s.language,
                s.label,
                s.channels,
                1 if s.is_default else 0,
            )
            for s in streams
        ],
    )


def get_media_item(conn: sqlite3.Connection, item_id: int) -> MediaItemRecord | None:
    """Get a media item by ID.

    Args:
        conn: Database connection.
        item_id: Media item primary key.

    Returns:
        MediaItemRecord if found, None otherwise.
    """
    cursor = conn.execute(
        f"SELECT {MEDIA_ITEM_COLUMNS} FROM media_items WHERE id = ?",  # nosec B608
        (item_id,),
    )
    row = cursor.fetchone()
    if row is None:
        return None
    return _row_to_media_item(row)


def get_media_item_by_path(
    conn: sqlite3.Connection, path: str
) -> MediaItemRecord | None:
    """Get a media item by its exact file path."""
    cursor = conn.execute(
        f"SELECT {MEDIA_ITEM_COLUMNS} FROM media_items WHERE path = ?",  # nosec B608
        (path,),
    )
    row = cursor.fetchone()
    if row is None:
        return None
    return _row_to_media_item(row)


def media_item_exists(conn: sqlite3.Connection, path: str) -> bool:
    """Return True if an item with this exact path is already indexed."""
    cursor = conn.execute("SELECT 1 FROM media_items WHERE path = ?", (path,))
    return cursor.fetchone() is not None


def _item_filter(
    library_id: int | None, media_type: str | None
) -> tuple[str, list]:
    clauses = []
    params: list = []
    if library_id is not None:
        clauses.append("library_id = ?")
        params.append(library_id)
    if media_type is not None:
        clauses.append("type = ?")
        params.append(media_type)
    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


def list_media_items(
    conn: sqlite3.Connection,
    library_id: int | None = None,
    *,
    media_type: str | None = None,
    sort: str = "title",
    order: str = "asc",
    limit: int | None = None,
    offset: int = 0,
) -> list[MediaItemRecord]:
    """List media items, optionally filtered, sorted and paginated.

    Args:
        conn: Database connection.
        library_id: Only items of this library.
        media_type: Only items of this type (movie, show, ...).
        sort: One of ITEM_SORT_COLUMNS. Ties are broken by id.
        order: "asc" or "desc".
        limit: Maximum number of rows; all rows when None.
        offset: Rows to skip before the first returned row.

    Raises:
        ValueError: If ``sort`` or ``order`` is not recognised.
    """
    if sort not in ITEM_SORT_COLUMNS:
        raise ValueError(f"Unknown sort key: {sort!r}")
    if order not in ("asc", "desc"):
        raise ValueError(f"Unknown sort order: {order!r}")

    where, params = _item_filter(library_id, media_type)
    direction = order.upper()
    query = (
        f"SELECT {MEDIA_ITEM_COLUMNS} FROM media_items{where} "  # nosec B608
        f"ORDER BY {ITEM_SORT_COLUMNS[sort]} {direction}, id {direction}"
    )
    if limit is not None:
        query += " LIMIT ? OFFSET ?"
        params += [limit, offset]
    return [_row_to_media_item(row) for row in conn.execute(query, params)]


def count_media_items(
    conn: sqlite3.Connection,
    library_id: int | None = None,
    *,
    media_type: str | None = None,
) -> int:
    """Return the number of indexed media items matching the filters."""
    where, params = _item_filter(library_id, media_type)
    query = f"SELECT COUNT(*) FROM media_items{where}"  # nosec B608
    return conn.execute(query, params).fetchone()[0]


def get_streams_for_item(
    conn: sqlite3.Connection, item_id: int
) -> list[MediaStreamRecord]:
    """Get the audio and subtitle streams of an item in stream order."""
    cursor = conn.execute(
        """
        SELECT id, media_item_id, stream_index, kind, codec, language, label,
               channels, is_default
        FROM media_streams WHERE media_item_id = ?
        ORDER BY stream_index
        """,
        (item_id,),
    )
    return [_row_to_media_stream(row) for row in cursor.fetchall()]
