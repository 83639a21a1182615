"""Domain enums for Homeflix.

These enums are shared by the catalog, scanner, image and streaming layers.
Values are the strings stored in the database.
"""

from enum import Enum


class LibraryType(Enum):
    """Kind of media a library holds."""

    MOVIE = "movie"
    SHOW = "show"
    MUSIC = "music"
    PHOTO = "photo"


class StreamKind(Enum):
    """Kind of non-video elementary stream persisted for a media item."""

    AUDIO = "audio"
    SUBTITLE = "subtitle"


class ImageKind(Enum):
    """Kind of artwork attached to a media item."""

    POSTER = "poster"
    BACKDROP = "backdrop"
    THUMBNAIL = "thumbnail"


class TranscodeStatus(Enum):
    """Status of a segmented transcode job.

    Valid transitions: PENDING -> PROCESSING -> COMPLETED | FAILED.
    COMPLETED and FAILED are terminal.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TranscodeStatus.COMPLETED, TranscodeStatus.FAILED)


class PlaybackMode(Enum):
    """How a stream request is served."""

    DIRECT_PLAY = "direct_play"
    TRANSCODE = "transcode"
