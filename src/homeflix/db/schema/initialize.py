"""Bring a database file up to the schema this release writes."""

import logging
import sqlite3

from .definition import SCHEMA_VERSION, create_schema

logger = logging.getLogger(__name__)


class SchemaVersionError(Exception):
    """The database was written by a newer Homeflix."""

    def __init__(self, found: int) -> None:
        self.found = found
        super().__init__(
            f"Database schema v{found} is newer than supported v{SCHEMA_VERSION}"
        )


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """Return the stored schema version, or None for an empty database."""
    exists = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = '_meta'"
    ).fetchone()
    if exists is None:
        return None
    row = conn.execute(
        "SELECT value FROM _meta WHERE key = 'schema_version'"
    ).fetchone()
    return None if row is None else int(row[0])


def initialize_database(conn: sqlite3.Connection) -> None:
    """Create every table on a fresh database; leave a current one alone.

    Raises:
        SchemaVersionError: If the stored version is newer than SCHEMA_VERSION.
    """
    found = get_schema_version(conn)
    if found is None:
        logger.info("Creating database schema v%d", SCHEMA_VERSION)
        create_schema(conn)
        return
    if found > SCHEMA_VERSION:
        raise SchemaVersionError(found)
    logger.debug("Database schema v%d is current", found)
