"""Data type definitions for the Homeflix catalog.

Database records mirror the tables in homeflix.db.schema. Enum-typed
columns are stored by value and converted back by the row mappers in
homeflix.db.queries.helpers.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path

from homeflix.domain import (
    AudioStreamInfo,
    ChapterInfo,
    ImageKind,
    LibraryType,
    MediaMetadata,
    StreamKind,
    SubtitleStreamInfo,
    TranscodeStatus,
)


@dataclass
class LibraryRecord:
    """Database record for libraries table."""

    id: int | None
    name: str
    type: LibraryType
    root_path: str
    created_at: str  # ISO 8601 UTC

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "root_path": self.root_path,
            "created_at": self.created_at,
        }


@dataclass
class MediaItemRecord:
    """Database record for media_items table."""

    id: int | None
    library_id: int
    type: str
    path: str
    title: str
    year: int | None
    duration_seconds: int
    container_format: str | None
    video_codec: str | None
    resolution: str | None  # "WxH"
    width: int | None
    height: int | None
    bitrate: int
    audio_channels_default: int | None
    chapters_json: str  # JSON array of {title, start_seconds, end_seconds}
    added_at: str  # ISO 8601 UTC
    updated_at: str  # ISO 8601 UTC

    @property
    def chapters(self) -> list[ChapterInfo]:
        """Decode the stored chapter list."""
        return [
            ChapterInfo(
                title=entry["title"],
                start_seconds=entry["start_seconds"],
                end_seconds=entry["end_seconds"],
            )
            for entry in json.loads(self.chapters_json or "[]")
        ]

    @property
    def extension(self) -> str:
        """Lowercase file extension without the dot."""
        return Path(self.path).suffix.lower().lstrip(".")

    @classmethod
    def from_metadata(
        cls,
        metadata: MediaMetadata,
        library_id: int,
        media_type: str,
        title: str,
        year: int | None,
        timestamp: str,
    ) -> MediaItemRecord:
        """Create an unsaved record from probe output.

        Duration and bitrate are floored to whole numbers.
        """
        video = metadata.video
        return cls(
            id=None,
            library_id=library_id,
            type=media_type,
            path=str(metadata.path),
            title=title,
            year=year,
            duration_seconds=int(metadata.duration_seconds),
            container_format=metadata.container_format,
            video_codec=video.codec if video else None,
            resolution=video.resolution if video else None,
            width=video.width if video else None,
            height=video.height if video else None,
            bitrate=int(metadata.bitrate),
            audio_channels_default=metadata.default_audio_channels,
            chapters_json=json.dumps([c.to_dict() for c in metadata.chapters]),
            added_at=timestamp,
            updated_at=timestamp,
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        del data["chapters_json"]
        data["chapters"] = [c.to_dict() for c in self.chapters]
        return data


@dataclass
class MediaStreamRecord:
    """Database record for media_streams table."""

    id: int | None
    media_item_id: int
    stream_index: int
    kind: StreamKind
    codec: str
    language: str | None = None
    label: str | None = None
    channels: int | None = None  # audio only
    is_default: bool = False

    @classmethod
    def from_stream_info(
        cls, info: AudioStreamInfo | SubtitleStreamInfo, media_item_id: int
    ) -> MediaStreamRecord:
        """Create an unsaved record from a probed audio or subtitle stream."""
        if isinstance(info, AudioStreamInfo):
            kind = StreamKind.AUDIO
            channels: int | None = info.channels
        else:
            kind = StreamKind.SUBTITLE
            channels = None
        return cls(
            id=None,
            media_item_id=media_item_id,
            stream_index=info.index,
            kind=kind,
            codec=info.codec,
            language=info.language,
            label=info.label,
            channels=channels,
            is_default=info.is_default,
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


@dataclass
class ImageRecord:
    """Database record for images table."""

    id: int | None
    media_item_id: int
    kind: ImageKind
    path: str
    size_class: str  # "small", "medium", "large"
    created_at: str  # ISO 8601 UTC


@dataclass
class TranscodeJobRecord:
    """Database record for transcode_jobs table."""

    id: str  # UUID v4
    media_item_id: int
    status: TranscodeStatus
    progress_percent: float  # 0.0 - 100.0
    output_dir: str
    created_at: str  # ISO 8601 UTC
    playlist_filename: str | None = None  # set only when COMPLETED
    error_message: str | None = None  # set only when FAILED
    started_at: str | None = None
    completed_at: str | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data
