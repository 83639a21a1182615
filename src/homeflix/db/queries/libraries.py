"""Library CRUD operations.

None of these functions commit. Callers own the transaction.
"""

import sqlite3

from homeflix.db.types import LibraryRecord

from .helpers import _row_to_library


def insert_library(conn: sqlite3.Connection, record: LibraryRecord) -> int:
    """Insert a new library record.

    Args:
        conn: Database connection.
        record: Library to insert (id is ignored).

    Returns:
        The ID of the inserted library.

    Note:
        This function does NOT commit. Caller must manage transactions.
    """
    cursor = conn.execute(
        """
        INSERT INTO libraries (name, type, root_path, created_at)
        VALUES (?, ?, ?, ?)
        """,
        (record.name, record.type.value, record.root_path, record.created_at),
    )
    return cursor.lastrowid


def get_library(conn: sqlite3.Connection, library_id: int) -> LibraryRecord | None:
    """Get a library by ID.

    Args:
        conn: Database connection.
        library_id: Library primary key.

    Returns:
        LibraryRecord if found, None otherwise.
    """
    cursor = conn.execute(
        "SELECT id, name, type, root_path, created_at FROM libraries WHERE id = ?",
        (library_id,),
    )
    row = cursor.fetchone()
    if row is None:
        return None
    return _row_to_library(row)


def list_libraries(conn: sqlite3.Connection) -> list[LibraryRecord]:
    """Get all libraries ordered by name."""
    cursor = conn.execute(
        "SELECT id, name, type, root_path, created_at FROM libraries "
        "ORDER BY name COLLATE NOCASE, id"
    )
    return [_row_to_library(row) for row in cursor.fetchall()]
