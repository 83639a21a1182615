"""Image (poster/backdrop/thumbnail) operations."""

import sqlite3

from homeflix.db.types import ImageKind, ImageRecord

from .helpers import _row_to_image


def get_image(
    conn: sqlite3.Connection, media_item_id: int, kind: ImageKind
) -> ImageRecord | None:
    """Get the first image of a kind for a media item.

    Args:
        conn: Database connection.
        media_item_id: Owning media item.
        kind: Image kind to look up.

    Returns:
        ImageRecord if found, None otherwise.
    """
    cursor = conn.execute(
        """
        SELECT id, media_item_id, kind, path, size_class, created_at
        FROM images WHERE media_item_id = ? AND kind = ?
        ORDER BY id LIMIT 1
        """,
        (media_item_id, kind.value),
    )
    row = cursor.fetchone()
    if row is None:
        return None
    return _row_to_image(row)


def insert_image(conn: sqlite3.Connection, record: ImageRecord) -> bool:
    """Insert an image row unless the one-poster-per-item index rejects it.

    Args:
        conn: Database connection.
        record: Image to insert (id is ignored).

    Returns:
        True if a row was inserted, False if a poster already existed.

    Note:
        This function does NOT commit. Caller must manage transactions.
    """
    cursor = conn.execute(
        """
        INSERT OR IGNORE INTO images (media_item_id, kind, path, size_class, created_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        (
            record.media_item_id,
            record.kind.value,
            record.path,
            record.size_class,
            record.created_at,
        ),
    )
    return cursor.rowcount > 0


def count_images(conn: sqlite3.Connection, media_item_id: int, kind: ImageKind) -> int:
    """Count images of a kind for a media item."""
    cursor = conn.execute(
        "SELECT COUNT(*) FROM images WHERE media_item_id = ? AND kind = ?",
        (media_item_id, kind.value),
    )
    return cursor.fetchone()[0]
