"""Database layer for Homeflix.

- connection: DaemonConnectionPool
- schema: DDL and initialization
- types: typed records
- queries: query functions (callers own transactions)
"""

from homeflix.db.connection import DaemonConnectionPool, PoolClosedError
from homeflix.db.schema import initialize_database
from homeflix.db.types import (
    ImageRecord,
    LibraryRecord,
    MediaItemRecord,
    MediaStreamRecord,
    TranscodeJobRecord,
)

__all__ = [
    "DaemonConnectionPool",
    "ImageRecord",
    "LibraryRecord",
    "MediaItemRecord",
    "MediaStreamRecord",
    "PoolClosedError",
    "TranscodeJobRecord",
    "initialize_database",
]
