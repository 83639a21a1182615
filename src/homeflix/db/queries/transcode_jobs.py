"""Transcode job CRUD and state transitions.

Status updates are guarded by the expected current status so that a job can
only move along PENDING -> PROCESSING -> COMPLETED | FAILED.
"""

import sqlite3

from homeflix.db.types import TranscodeJobRecord, TranscodeStatus

from .helpers import TRANSCODE_JOB_COLUMNS, _row_to_transcode_job

_ACTIVE_STATUSES = (TranscodeStatus.PENDING.value, TranscodeStatus.PROCESSING.value)


def insert_transcode_job(conn: sqlite3.Connection, job: TranscodeJobRecord) -> str:
    """Insert a new transcode job record.

    Args:
        conn: Database connection.
        job: Job to insert.

    Returns:
        The ID of the inserted job.

    Raises:
        sqlite3.IntegrityError: If the item already has a pending or
            processing job.

    Note:
        This function does NOT commit. Caller must manage transactions.
    """
    conn.execute(
        """
        INSERT INTO transcode_jobs (
            id, media_item_id, status, progress_percent, output_dir,
            playlist_filename, error_message, created_at, started_at, completed_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            job.id,
            job.media_item_id,
            job.status.value,
            job.progress_percent,
            job.output_dir,
            job.playlist_filename,
            job.error_message,
            job.created_at,
            job.started_at,
            job.completed_at,
        ),
    )
    return job.id


def get_transcode_job(
    conn: sqlite3.Connection, job_id: str
) -> TranscodeJobRecord | None:
    """Get a transcode job by ID.

    Args:
        conn: Database connection.
        job_id: Job UUID.

    Returns:
        TranscodeJobRecord if found, None otherwise.
    """
    cursor = conn.execute(
        f"SELECT {TRANSCODE_JOB_COLUMNS} FROM transcode_jobs WHERE id = ?",  # nosec
        (job_id,),
    )
    row = cursor.fetchone()
    if row is None:
        return None
    return _row_to_transcode_job(row)


def get_reusable_job_for_item(
    conn: sqlite3.Connection, media_item_id: int
) -> TranscodeJobRecord | None:
    """Find the job a new request for this item should attach to.

    A pending or processing job wins over a completed one; among completed
    jobs the most recent is returned. Failed jobs are never returned.

    Args:
        conn: Database connection.
        media_item_id: Media item ID.

    Returns:
        The job to reuse, or None if a new job must be created.
    """
    cursor = conn.execute(
        f"""
        SELECT {TRANSCODE_JOB_COLUMNS} FROM transcode_jobs
        WHERE media_item_id = ? AND status IN (?, ?, ?)
        ORDER BY CASE status WHEN ? THEN 1 ELSE 0 END, created_at DESC
        LIMIT 1
        """,  # nosec B608
        (
            media_item_id,
            *_ACTIVE_STATUSES,
            TranscodeStatus.COMPLETED.value,
            TranscodeStatus.COMPLETED.value,
        ),
    )
    row = cursor.fetchone()
    if row is None:
        return None
    return _row_to_transcode_job(row)


def get_jobs_for_item(
    conn: sqlite3.Connection, media_item_id: int
) -> list[TranscodeJobRecord]:
    """Get all jobs for an item, newest first."""
    cursor = conn.execute(
        f"""
        SELECT {TRANSCODE_JOB_COLUMNS} FROM transcode_jobs
        WHERE media_item_id = ? ORDER BY created_at DESC
        """,  # nosec B608
        (media_item_id,),
    )
    return [_row_to_transcode_job(row) for row in cursor.fetchall()]


def mark_job_processing(conn: sqlite3.Connection, job_id: str, started_at: str) -> bool:
    """Move a job from PENDING to PROCESSING.

    Returns:
        True if the job was updated, False if it was not PENDING.

    Note:
        This function does NOT commit. Caller must manage transactions.
    """
    cursor = conn.execute(
        "UPDATE transcode_jobs SET status = ?, started_at = ? "
        "WHERE id = ? AND status = ?",
        (
            TranscodeStatus.PROCESSING.value,
            started_at,
            job_id,
            TranscodeStatus.PENDING.value,
        ),
    )
    return cursor.rowcount > 0


def mark_job_completed(
    conn: sqlite3.Connection, job_id: str, playlist_filename: str, completed_at: str
) -> bool:
    """Move a job from PROCESSING to COMPLETED with progress 100.

    Returns:
        True if the job was updated, False if it was not PROCESSING.

    Note:
        This function does NOT commit. Caller must manage transactions.
    """
    cursor = conn.execute(
        """
        UPDATE transcode_jobs
        SET status = ?, progress_percent = 100, playlist_filename = ?,
            completed_at = ?, error_message = NULL
        WHERE id = ? AND status = ?
        """,
        (
            TranscodeStatus.COMPLETED.value,
            playlist_filename,
            completed_at,
            job_id,
            TranscodeStatus.PROCESSING.value,
        ),
    )
    return cursor.rowcount > 0


def mark_job_failed(
    conn: sqlite3.Connection, job_id: str, error_message: str, completed_at: str
) -> bool:
    """Move a PENDING or PROCESSING job to FAILED.

    The playlist filename is cleared so a failed job never advertises a
    partial playlist.

    Returns:
        True if the job was updated, False if it was already terminal.

    Note:
        This function does NOT commit. Caller must manage transactions.
    """
    cursor = conn.execute(
        """
        UPDATE transcode_jobs
        SET status = ?, error_message = ?, completed_at = ?, playlist_filename = NULL
        WHERE id = ? AND status IN (?, ?)
        """,
        (
            TranscodeStatus.FAILED.value,
            error_message,
            completed_at,
            job_id,
            *_ACTIVE_STATUSES,
        ),
    )
    return cursor.rowcount > 0


def update_job_progress(
    conn: sqlite3.Connection, job_id: str, progress_percent: float
) -> bool:
    """Update progress of a PROCESSING job.

    Args:
        conn: Database connection.
        job_id: Job UUID.
        progress_percent: Progress percentage (0-100).

    Returns:
        True if job was updated, False if not found or not processing.

    Note:
        This function does NOT commit. Caller must manage transactions.
    """
    cursor = conn.execute(
        "UPDATE transcode_jobs SET progress_percent = ? WHERE id = ? AND status = ?",
        (
            max(0.0, min(100.0, progress_percent)),
            job_id,
            TranscodeStatus.PROCESSING.value,
        ),
    )
    return cursor.rowcount > 0


def count_jobs_by_status(conn: sqlite3.Connection) -> dict[str, int]:
    """Return a mapping of status value to job count (all statuses present)."""
    counts = {status.value: 0 for status in TranscodeStatus}
    cursor = conn.execute(
        "SELECT status, COUNT(*) FROM transcode_jobs GROUP BY status"
    )
    for status, count in cursor.fetchall():
        counts[status] = count
    return counts


def fail_interrupted_jobs(
    conn: sqlite3.Connection,
    completed_at: str,
    media_item_id: int | None = None,
    error_message: str = "Interrupted by server restart",
) -> int:
    """Mark jobs left PENDING or PROCESSING by a previous process as FAILED.

    Args:
        conn: Database connection.
        completed_at: Timestamp recorded on the failed jobs.
        media_item_id: Only fail this item's jobs; every item when None.
        error_message: Reason stored on the failed jobs.

    Returns:
        Number of jobs updated.

    Note:
        This function does NOT commit. Caller must manage transactions.
    """
    query = """
        UPDATE transcode_jobs
        SET status = ?, error_message = ?, completed_at = ?, playlist_filename = NULL
        WHERE status IN (?, ?)
    """
    params: list = [
        TranscodeStatus.FAILED.value,
        error_message,
        completed_at,
        *_ACTIVE_STATUSES,
    ]
    if media_item_id is not None:
        query += " AND media_item_id = ?"
        params.append(media_item_id)
    cursor = conn.execute(query, params)
    return cursor.rowcount
