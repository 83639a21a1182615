"""Homeflix SQLite schema: DDL, version marker and first-run setup."""

from .definition import SCHEMA_SQL, SCHEMA_VERSION, create_schema
from .initialize import SchemaVersionError, get_schema_version, initialize_database

__all__ = [
    "SCHEMA_SQL",
    "SCHEMA_VERSION",
    "SchemaVersionError",
    "create_schema",
    "get_schema_version",
    "initialize_database",
]
