"""Database schema definition for Homeflix.

Tables, indexes and constraints for the media catalog. The partial unique
indexes enforce two invariants at the storage level: one poster per media
item, and at most one non-terminal transcode job per media item.
"""

import sqlite3

SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS _meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS libraries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    type TEXT NOT NULL CHECK (type IN ('movie', 'show', 'music', 'photo')),
    root_path TEXT NOT NULL,
    created_at TEXT NOT NULL   -- ISO 8601 UTC timestamp
);

CREATE TABLE IF NOT EXISTS media_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    library_id INTEGER NOT NULL REFERENCES libraries(id) ON DELETE CASCADE,
    type TEXT NOT NULL,
    path TEXT UNIQUE NOT NULL,
    title TEXT NOT NULL,
    year INTEGER,
    duration_seconds INTEGER NOT NULL DEFAULT 0,
    container_format TEXT,
    video_codec TEXT,
    resolution TEXT,            -- "WxH"
    width INTEGER,
    height INTEGER,
    bitrate INTEGER NOT NULL DEFAULT 0,
    audio_channels_default INTEGER,
    chapters_json TEXT NOT NULL DEFAULT '[]',
    added_at TEXT NOT NULL,     -- ISO 8601 UTC timestamp
    updated_at TEXT NOT NULL    -- ISO 8601 UTC timestamp
);

CREATE INDEX IF NOT EXISTS idx_media_items_library ON media_items(library_id);

CREATE TABLE IF NOT EXISTS media_streams (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    media_item_id INTEGER NOT NULL REFERENCES media_items(id) ON DELETE CASCADE,
    stream_index INTEGER NOT NULL,
    kind TEXT NOT NULL CHECK (kind IN ('audio', 'subtitle')),
    codec TEXT NOT NULL,
    language TEXT,
    label TEXT,
    channels INTEGER,
    is_default INTEGER NOT NULL DEFAULT 0,
    UNIQUE (media_item_id, stream_index)
);

CREATE INDEX IF NOT EXISTS idx_media_streams_item ON media_streams(media_item_id);

CREATE TABLE IF NOT EXISTS images (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    media_item_id INTEGER NOT NULL REFERENCES media_items(id) ON DELETE CASCADE,
    kind TEXT NOT NULL CHECK (kind IN ('poster', 'backdrop', 'thumbnail')),
    path TEXT NOT NULL,
    size_class TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_images_one_poster
    ON images(media_item_id) WHERE kind = 'poster';

CREATE TABLE IF NOT EXISTS transcode_jobs (
    id TEXT PRIMARY KEY,        -- UUID
    media_item_id INTEGER NOT NULL REFERENCES media_items(id) ON DELETE CASCADE,
    status TEXT NOT NULL
        CHECK (status IN ('pending', 'processing', 'completed', 'failed')),
    progress_percent REAL NOT NULL DEFAULT 0
        CHECK (progress_percent >= 0 AND progress_percent <= 100),
    output_dir TEXT NOT NULL,
    playlist_filename TEXT,
    error_message TEXT,
    created_at TEXT NOT NULL,
    started_at TEXT,
    completed_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_transcode_jobs_item
    ON transcode_jobs(media_item_id, created_at DESC);

CREATE UNIQUE INDEX IF NOT EXISTS idx_transcode_jobs_one_active
    ON transcode_jobs(media_item_id) WHERE status IN ('pending', 'processing');
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all database tables and indexes.

    Args:
        conn: An open database connection.
    """
    conn.executescript(SCHEMA_SQL)
    conn.execute(
        "INSERT OR IGNORE INTO _meta (key, value) VALUES ('schema_version', ?)",
        (str(SCHEMA_VERSION),),
    )
    conn.commit()
