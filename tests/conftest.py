"""Shared test fixtures for Homeflix."""

import json
import os
import shutil
import stat
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from homeflix.config import HomeflixConfig, clear_config_cache
from homeflix.core import utc_now_iso
from homeflix.db import DaemonConnectionPool, LibraryRecord, MediaItemRecord
from homeflix.db.queries import insert_library, insert_media_item
from homeflix.domain import (
    AudioStreamInfo,
    LibraryType,
    MediaMetadata,
    SubtitleStreamInfo,
    VideoStreamInfo,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation."""
    dir_path = tempfile.mkdtemp()
    yield Path(dir_path)
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture(autouse=True)
def homeflix_data_dir(temp_dir: Path):
    """Point HOMEFLIX_DATA_DIR at a temporary directory for every test.

    Any HOMEFLIX_* variables from the developer's shell are removed so the
    configuration under test only sees what the test sets.
    """
    data_dir = temp_dir / ".homeflix"
    data_dir.mkdir(parents=True, exist_ok=True)

    env = {k: v for k, v in os.environ.items() if not k.startswith("HOMEFLIX_")}
    env["HOMEFLIX_DATA_DIR"] = str(data_dir)

    clear_config_cache()
    with patch.dict(os.environ, env, clear=True):
        yield data_dir
    clear_config_cache()


@pytest.fixture
def temp_db(temp_dir: Path) -> Path:
    """Create a temporary database path."""
    return temp_dir / "test_library.db"


@pytest.fixture
def pool(temp_db: Path):
    """An initialized connection pool on a fresh database."""
    connection_pool = DaemonConnectionPool(temp_db)
    connection_pool.initialize()
    yield connection_pool
    connection_pool.close()


@pytest.fixture
def cache_dir(temp_dir: Path) -> Path:
    path = temp_dir / "cache"
    path.mkdir()
    return path


@pytest.fixture
def test_config(temp_db: Path, cache_dir: Path) -> HomeflixConfig:
    """Configuration pointing at the temporary database and cache."""
    return HomeflixConfig(database_path=temp_db, cache_dir=cache_dir)


@pytest.fixture
def media_root(temp_dir: Path) -> Path:
    """Create a library root with a few video files and some noise."""
    root = temp_dir / "media"
    root.mkdir()
    (root / "Big Buck Bunny.mp4").write_bytes(b"\x00" * 1024)
    (root / "Sintel.MKV").write_bytes(b"\x00" * 512)
    (root / "notes.txt").write_text("not a video")

    nested = root / "Extras"
    nested.mkdir()
    (nested / "Trailer.webm").write_bytes(b"\x00" * 256)
    return root


def make_metadata(
    path: Path,
    *,
    duration: float = 600.0,
    video_codec: str | None = "h264",
    width: int = 1920,
    height: int = 1080,
    audio_channels: tuple[int, ...] = (6,),
    subtitles: tuple[str, ...] = (),
) -> MediaMetadata:
    """Build a MediaMetadata as a probe would return it."""
    video = None
    if video_codec is not None:
        video = VideoStreamInfo(index=0, codec=video_codec, width=width, height=height)
    audio = [
        AudioStreamInfo(
            index=i + 1,
            codec="aac",
            channels=channels,
            language="eng",
            is_default=i == 0,
        )
        for i, channels in enumerate(audio_channels)
    ]
    subs = [
        SubtitleStreamInfo(index=len(audio) + i + 1, codec="subrip", language=lang)
        for i, lang in enumerate(subtitles)
    ]
    return MediaMetadata(
        path=path,
        duration_seconds=duration,
        container_format="mov,mp4,m4a,3gp,3g2,mj2",
        bitrate=4_000_000,
        size_bytes=path.stat().st_size if path.exists() else 0,
        video=video,
        audio_streams=audio,
        subtitle_streams=subs,
    )


def create_library(
    pool: DaemonConnectionPool,
    root_path: Path,
    name: str = "Movies",
    library_type: LibraryType = LibraryType.MOVIE,
) -> int:
    """Insert a library row and return its id."""
    with pool.transaction() as conn:
        return insert_library(
            conn,
            LibraryRecord(
                id=None,
                name=name,
                type=library_type,
                root_path=str(root_path),
                created_at=utc_now_iso(),
            ),
        )


def create_media_item(
    pool: DaemonConnectionPool,
    library_id: int,
    path: Path,
    *,
    video_codec: str | None = "h264",
    duration: float = 600.0,
) -> int:
    """Insert a media item row for an existing (or fake) file."""
    metadata = make_metadata(path, video_codec=video_codec, duration=duration)
    record = MediaItemRecord.from_metadata(
        metadata,
        library_id=library_id,
        media_type="movie",
        title=path.stem,
        year=2024,
        timestamp=utc_now_iso(),
    )
    with pool.transaction() as conn:
        return insert_media_item(conn, record)


def write_fake_ffmpeg(directory: Path, body: str, name: str = "ffmpeg") -> Path:
    """Write an executable shell script standing in for ffmpeg."""
    script = directory / name
    script.write_text("#!/bin/sh\n" + body + "\n")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


# The last argument is the output file (poster JPEG or HLS playlist)
FAKE_FFMPEG_POSTER = """\
for last; do :; done
printf 'JPEGDATA' > "$last"
"""

FAKE_FFMPEG_HLS = """\
for last; do :; done
dir=$(dirname "$last")
echo "frame=  100 fps=30 q=28.0 size=    512kB time=00:00:05.00 bitrate=800kbits/s speed=2.0x" >&2
printf 'SEGMENT' > "$dir/segment_000.ts"
echo "frame=  300 fps=30 q=28.0 size=   1024kB time=00:00:08.00 bitrate=800kbits/s speed=2.0x" >&2
printf '#EXTM3U\\n#EXTINF:10.0,\\nsegment_000.ts\\n#EXT-X-ENDLIST\\n' > "$last"
"""

FAKE_FFMPEG_FAIL = """\
echo "Invalid data found when processing input" >&2
exit 1
"""

FAKE_FFMPEG_NO_OUTPUT = """\
exit 0
"""

FAKE_FFMPEG_LIVE = """\
printf 'FRAGMENTED-MP4'
"""

FAKE_FFMPEG_ENDLESS = """\
exec cat /dev/zero
"""


@pytest.fixture
def fake_ffmpeg(temp_dir: Path):
    """Factory writing fake ffmpeg scripts into a bin directory."""
    bin_dir = temp_dir / "bin"
    bin_dir.mkdir()

    def _make(body: str) -> Path:
        return write_fake_ffmpeg(bin_dir, body)

    return _make


def load_ffprobe_fixture(name: str) -> dict:
    """Load an ffprobe JSON fixture by name.

    Args:
        name: Name of the fixture file (without .json extension).

    Returns:
        Parsed JSON data from the fixture.
    """
    fixture_path = FIXTURES_DIR / "ffprobe" / f"{name}.json"
    return json.loads(fixture_path.read_text())


@pytest.fixture
def h264_mp4_fixture() -> dict:
    """ffprobe output for an H.264/AAC MP4 with chapters."""
    return load_ffprobe_fixture("h264_mp4")


@pytest.fixture
def hevc_mkv_fixture() -> dict:
    """ffprobe output for an HEVC MKV with several audio and subtitle tracks."""
    return load_ffprobe_fixture("hevc_mkv_multi_audio")


@pytest.fixture
def audio_only_fixture() -> dict:
    """ffprobe output for a file with no video stream."""
    return load_ffprobe_fixture("audio_only")


@pytest.fixture
def attached_pic_fixture() -> dict:
    """ffprobe output where cover art precedes the real video stream."""
    return load_ffprobe_fixture("attached_pic")


@pytest.fixture
def metadata_factory():
    """Expose make_metadata to tests."""
    return make_metadata


@pytest.fixture
def library_factory(pool: DaemonConnectionPool):
    """Create libraries on the test pool."""

    def _make(root_path: Path, **kwargs) -> int:
        return create_library(pool, root_path, **kwargs)

    return _make


@pytest.fixture
def item_factory(pool: DaemonConnectionPool):
    """Create media items on the test pool."""

    def _make(library_id: int, path: Path, **kwargs) -> int:
        return create_media_item(pool, library_id, path, **kwargs)

    return _make


@pytest.fixture
def ffmpeg_scripts() -> dict[str, str]:
    """Bodies for the fake ffmpeg scripts, by behavior."""
    return {
        "poster": FAKE_FFMPEG_POSTER,
        "hls": FAKE_FFMPEG_HLS,
        "fail": FAKE_FFMPEG_FAIL,
        "no_output": FAKE_FFMPEG_NO_OUTPUT,
        "live": FAKE_FFMPEG_LIVE,
        "endless": FAKE_FFMPEG_ENDLESS,
    }
