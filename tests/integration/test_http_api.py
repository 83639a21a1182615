"""Integration tests for the HTTP API.

Each test case runs the real application against a fresh catalog, a fake
ffmpeg script and a stub metadata probe.
"""

from __future__ import annotations

import asyncio
import shutil
import stat
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

import aiohttp
from aiohttp.test_utils import AioHTTPTestCase

from homeflix import __version__
from homeflix.config import HomeflixConfig, StreamingConfig, ToolPathsConfig
from homeflix.db.queries import list_media_items
from homeflix.domain import AudioStreamInfo, MediaMetadata, VideoStreamInfo
from homeflix.introspector import StubProbe
from homeflix.server.app import create_app
from homeflix.server.lifecycle import DaemonLifecycle
from homeflix.services import MediaServices
from homeflix.tools import ToolNotFoundError

if TYPE_CHECKING:
    from aiohttp import web

# Live transcodes write to pipe:1, segmented jobs to a playlist, posters to a JPEG
FAKE_FFMPEG = """\
#!/bin/sh
for last; do :; done
case "$last" in
  pipe:1) printf 'FRAGMENTED-MP4' ;;
  *.m3u8)
    printf 'SEGMENT' > "$(dirname "$last")/segment_000.ts"
    printf '#EXTM3U\\n#EXTINF:10.0,\\nsegment_000.ts\\n#EXT-X-ENDLIST\\n' > "$last"
    ;;
  *) printf 'JPEGDATA' > "$last" ;;
esac
"""

MOVIE_BYTES = bytes(range(256)) * 4


def _metadata(path: Path, video_codec: str | None) -> MediaMetadata:
    video = None
    if video_codec is not None:
        video = VideoStreamInfo(index=0, codec=video_codec, width=1920, height=1080)
    return MediaMetadata(
        path=path,
        duration_seconds=120.0,
        container_format="mov,mp4,m4a,3gp,3g2,mj2",
        bitrate=2_000_000,
        size_bytes=path.stat().st_size,
        video=video,
        audio_streams=[
            AudioStreamInfo(index=1, codec="aac", channels=2, language="eng", is_default=True)
        ],
    )


class HomeflixApiTestCase(AioHTTPTestCase):
    """Runs the app on a scanned library of three items.

    ``Direct.mp4`` is h264 in MP4 (Direct Play), ``Other.mkv`` is HEVC in
    Matroska (transcoded) and ``Radio.mkv`` has no video stream, so no poster.
    """

    async def get_application(self) -> web.Application:
        self._tmp = Path(tempfile.mkdtemp())
        self.addCleanup(shutil.rmtree, self._tmp, True)

        media = self._tmp / "media"
        media.mkdir()
        self.direct_path = media / "Direct.mp4"
        self.direct_path.write_bytes(MOVIE_BYTES)
        (media / "Other.mkv").write_bytes(b"\x00" * 64)
        (media / "Radio.mkv").write_bytes(b"\x00" * 32)

        ffmpeg = self._tmp / "ffmpeg"
        ffmpeg.write_text(FAKE_FFMPEG)
        ffmpeg.chmod(ffmpeg.stat().st_mode | stat.S_IXUSR)

        probe = StubProbe()
        probe.add(self.direct_path, _metadata(self.direct_path, "h264"))
        probe.add(media / "Other.mkv", _metadata(media / "Other.mkv", "hevc"))
        probe.add(media / "Radio.mkv", _metadata(media / "Radio.mkv", None))

        config = HomeflixConfig(
            database_path=self._tmp / "library.db",
            cache_dir=self._tmp / "cache",
            tools=ToolPathsConfig(ffmpeg=ffmpeg),
            streaming=StreamingConfig(chunk_size=100, disconnect_poll_interval=0.1),
        )
        self.services = MediaServices.build(config, probe=probe)
        self.library = self.services.create_library("Movies", "movie", media)
        self.services.scanner.scan_library(self.library.id)
        self.services.image_manager.wait_for_pending(timeout=30)

        with self.services.pool.read_connection() as conn:
            self.items = {
                item.title: item.id
                for item in list_media_items(conn, library_id=self.library.id)
            }

        self.lifecycle = DaemonLifecycle(shutdown_timeout=1.0)
        return create_app(self.services, self.lifecycle)

    async def wait_for_background_scans(self) -> None:
        await asyncio.gather(*list(self.app["background_tasks"]))

    async def completed_job_id(self) -> str:
        async with self.client.post(
            f"/api/items/{self.items['Other']}/transcode"
        ) as response:
            job_id = (await response.json())["job_id"]
        await self.services.transcode_manager.wait_for_job(job_id, timeout=30)
        return job_id


class TestHealthEndpoints(HomeflixApiTestCase):
    """Tests for /health and /health/stream."""

    async def test_healthy(self) -> None:
        async with self.client.get("/health") as response:
            assert response.status == 200
            data = await response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert data["version"] == __version__
        assert data["shutting_down"] is False
        assert data["live_streams"] == 0
        assert data["transcode_jobs_pending"] == 0

    async def test_stream_health_without_jobs(self) -> None:
        async with self.client.get("/health/stream") as response:
            assert response.status == 200
            data = await response.json()
        assert data["playable"] is False
        assert data["jobs_on_disk"] == 0
        assert data["mime_types"][".ts"] == "video/mp2t"

    async def test_stream_health_after_job(self) -> None:
        job_id = await self.completed_job_id()

        async with self.client.get("/health/stream") as response:
            data = await response.json()
        assert data["playable"] is True
        assert data["sample_job"] == job_id
        assert data["jobs_on_disk"] == 1

    async def test_shutting_down(self) -> None:
        self.lifecycle.initiate_shutdown()

        async with self.client.get("/health") as response:
            assert response.status == 503
            assert (await response.json())["status"] == "unhealthy"
        async with self.client.get("/api/libraries") as response:
            assert response.status == 503
            assert (await response.json())["code"] == "SHUTTING_DOWN"


class TestLibraryApi(HomeflixApiTestCase):
    """Tests for /api/libraries endpoints."""

    async def test_list(self) -> None:
        for prefix in ("/api", "/api/v1"):
            async with self.client.get(f"{prefix}/libraries") as response:
                assert response.status == 200
                data = await response.json()
            assert [lib["name"] for lib in data["libraries"]] == ["Movies"]
            assert data["libraries"][0]["type"] == "movie"

    async def test_create_without_scan(self) -> None:
        root = self._tmp / "shows"
        root.mkdir()
        payload = {"name": "  Shows ", "type": "show", "root_path": str(root), "scan": False}

        async with self.client.post("/api/libraries", json=payload) as response:
            assert response.status == 201
            data = await response.json()

        assert data["scan_started"] is False
        assert data["library"]["name"] == "Shows"
        assert data["library"]["type"] == "show"
        assert not self.app["background_tasks"]

    async def test_create_starts_scan(self) -> None:
        root = self._tmp / "music"
        root.mkdir()
        payload = {"name": "Music", "type": "music", "root_path": str(root)}

        async with self.client.post("/api/v1/libraries", json=payload) as response:
            assert response.status == 201
            data = await response.json()
        await self.wait_for_background_scans()

        assert data["scan_started"] is True
        async with self.client.get("/api/libraries") as response:
            assert len((await response.json())["libraries"]) == 2

    async def test_create_invalid_json(self) -> None:
        async with self.client.post(
            "/api/libraries",
            data="{not json",
            headers={"Content-Type": "application/json"},
        ) as response:
            assert response.status == 400
            assert (await response.json())["code"] == "INVALID_JSON"

    async def test_create_validation_errors(self) -> None:
        payload = {"name": " ", "type": "movies", "root_path": "/srv"}

        async with self.client.post("/api/libraries", json=payload) as response:
            assert response.status == 400
            data = await response.json()

        assert data["code"] == "VALIDATION_FAILED"
        fields = {detail["field"] for detail in data["details"]}
        assert fields == {"name", "type"}

    async def test_create_rejects_unknown_fields(self) -> None:
        payload = {"name": "A", "type": "movie", "root_path": "/srv", "owner": "me"}

        async with self.client.post("/api/libraries", json=payload) as response:
            assert response.status == 400
            assert (await response.json())["details"][0]["field"] == "owner"

    async def test_items(self) -> None:
        async with self.client.get(
            f"/api/libraries/{self.library.id}/items"
        ) as response:
            assert response.status == 200
            data = await response.json()

        assert data["library_id"] == self.library.id
        assert {item["title"] for item in data["items"]} == {"Direct", "Other", "Radio"}
        assert (data["page"], data["limit"], data["total"]) == (1, 50, 3)

    async def get_items(self, query: str) -> dict:
        async with self.client.get(
            f"/api/libraries/{self.library.id}/items?{query}"
        ) as response:
            assert response.status == 200
            return await response.json()

    async def test_items_sorted_and_paged(self) -> None:
        first = await self.get_items("sort=title&order=asc&limit=2")
        second = await self.get_items("sort=title&order=asc&limit=2&page=2")

        assert [item["title"] for item in first["items"]] == ["Direct", "Other"]
        assert [item["title"] for item in second["items"]] == ["Radio"]
        assert first["total"] == second["total"] == 3

    async def test_items_descending(self) -> None:
        data = await self.get_items("sort=title&order=desc")
        assert [item["title"] for item in data["items"]] == ["Radio", "Other", "Direct"]

    async def test_items_filtered_by_type(self) -> None:
        shows = await self.get_items("type=show")
        movies = await self.get_items("type=movie")
        everything = await self.get_items("type=all")

        assert shows["items"] == [] and shows["total"] == 0
        assert len(movies["items"]) == len(everything["items"]) == 3

    async def test_items_unknown_query_params_are_ignored(self) -> None:
        data = await self.get_items("unwatched=true")
        assert data["total"] == 3

    async def test_items_invalid_query(self) -> None:
        for query in ("sort=rating", "order=up", "page=0", "limit=501", "type=book"):
            async with self.client.get(
                f"/api/libraries/{self.library.id}/items?{query}"
            ) as response:
                assert response.status == 400, query
                assert (await response.json())["code"] == "INVALID_PARAMETER"

    async def test_items_unknown_library(self) -> None:
        async with self.client.get("/api/libraries/999/items") as response:
            assert response.status == 404
            assert (await response.json())["code"] == "NOT_FOUND"

    async def test_invalid_library_id(self) -> None:
        async with self.client.post("/api/libraries/abc/scan") as response:
            assert response.status == 400
            assert (await response.json())["code"] == "INVALID_ID_FORMAT"

    async def test_rescan(self) -> None:
        async with self.client.post(
            f"/api/libraries/{self.library.id}/scan"
        ) as response:
            assert response.status == 202
            data = await response.json()
        await self.wait_for_background_scans()

        assert data == {"library_id": self.library.id, "already_running": False}
        with self.services.pool.read_connection() as conn:
            assert len(list_media_items(conn, library_id=self.library.id)) == 3

    async def test_scan_unknown_library(self) -> None:
        async with self.client.post("/api/libraries/999/scan") as response:
            assert response.status == 404


class TestItemApi(HomeflixApiTestCase):
    """Tests for /api/items endpoints."""

    async def test_detail(self) -> None:
        async with self.client.get(f"/api/items/{self.items['Direct']}") as response:
            assert response.status == 200
            data = await response.json()

        assert data["title"] == "Direct"
        assert data["video_codec"] == "h264"
        assert data["has_poster"] is True
        assert [s["kind"] for s in data["streams"]] == ["audio"]
        assert "chapters_json" not in data

    async def test_detail_unknown(self) -> None:
        async with self.client.get("/api/items/999") as response:
            assert response.status == 404

    async def test_poster(self) -> None:
        async with self.client.get(
            f"/api/items/{self.items['Direct']}/poster"
        ) as response:
            assert response.status == 200
            assert response.headers["Content-Type"] == "image/jpeg"
            assert await response.read() == b"JPEGDATA"

    async def test_no_poster_without_video(self) -> None:
        async with self.client.get(
            f"/api/items/{self.items['Radio']}/poster"
        ) as response:
            assert response.status == 404

    async def test_start_transcode_is_idempotent(self) -> None:
        url = f"/api/items/{self.items['Other']}/transcode"
        async with self.client.post(url) as response:
            assert response.status == 202
            first = (await response.json())["job_id"]
        await self.services.transcode_manager.wait_for_job(first, timeout=30)

        async with self.client.post(url) as response:
            second = (await response.json())["job_id"]

        assert second == first

    async def test_start_transcode_unknown_item(self) -> None:
        async with self.client.post("/api/items/999/transcode") as response:
            assert response.status == 404


class TestStreamApi(HomeflixApiTestCase):
    """Tests for /api/stream/{item_id}."""

    async def test_direct_play_full_file(self) -> None:
        async with self.client.get(f"/api/stream/{self.items['Direct']}") as response:
            assert response.status == 200
            assert response.headers["Content-Type"] == "video/mp4"
            assert response.headers["Accept-Ranges"] == "bytes"
            assert response.headers["Content-Length"] == str(len(MOVIE_BYTES))
            assert "X-Transcoding" not in response.headers
            assert await response.read() == MOVIE_BYTES

    async def test_direct_play_range(self) -> None:
        async with self.client.get(
            f"/api/stream/{self.items['Direct']}", headers={"Range": "bytes=10-19"}
        ) as response:
            assert response.status == 206
            assert response.headers["Content-Range"] == f"bytes 10-19/{len(MOVIE_BYTES)}"
            assert response.headers["Content-Length"] == "10"
            assert await response.read() == MOVIE_BYTES[10:20]

    async def test_direct_play_suffix_range(self) -> None:
        async with self.client.get(
            f"/api/stream/{self.items['Direct']}", headers={"Range": "bytes=-300"}
        ) as response:
            assert response.status == 206
            assert await response.read() == MOVIE_BYTES[-300:]

    async def test_range_not_satisfiable(self) -> None:
        async with self.client.get(
            f"/api/stream/{self.items['Direct']}", headers={"Range": "bytes=5000-"}
        ) as response:
            assert response.status == 416
            assert response.headers["Content-Range"] == f"bytes */{len(MOVIE_BYTES)}"
            assert (await response.json())["code"] == "RANGE_NOT_SATISFIABLE"

    async def test_head(self) -> None:
        async with self.client.head(f"/api/stream/{self.items['Direct']}") as response:
            assert response.status == 200
            assert response.headers["Content-Length"] == str(len(MOVIE_BYTES))
            assert await response.read() == b""

    async def test_live_transcode(self) -> None:
        async with self.client.get(f"/api/v1/stream/{self.items['Other']}") as response:
            assert response.status == 200
            assert response.headers["X-Transcoding"] == "active"
            assert response.headers["Content-Type"] == "video/mp4"
            assert response.headers["Cache-Control"] == "no-store"
            assert await response.read() == b"FRAGMENTED-MP4"
        assert not self.services.stream_controller.active_processes

    async def test_height_forces_transcode(self) -> None:
        async with self.client.get(
            f"/api/stream/{self.items['Direct']}?height=720"
        ) as response:
            assert response.headers["X-Transcoding"] == "active"
            assert await response.read() == b"FRAGMENTED-MP4"

    async def test_invalid_height(self) -> None:
        for height in ("abc", "0", "-1", "9999"):
            async with self.client.get(
                f"/api/stream/{self.items['Other']}?height={height}"
            ) as response:
                assert response.status == 400
                assert (await response.json())["code"] == "INVALID_PARAMETER"

    async def test_unknown_item(self) -> None:
        async with self.client.get("/api/stream/999") as response:
            assert response.status == 404

    async def test_missing_file(self) -> None:
        self.direct_path.unlink()
        async with self.client.get(f"/api/stream/{self.items['Direct']}") as response:
            assert response.status == 404

    async def test_ffmpeg_unavailable(self) -> None:
        self.services.stream_controller._tool_path = None
        with patch(
            "homeflix.executor.ffmpeg_base.require_tool",
            side_effect=ToolNotFoundError("ffmpeg"),
        ):
            async with self.client.get(
                f"/api/stream/{self.items['Other']}"
            ) as response:
                assert response.status == 503
                assert (await response.json())["code"] == "TOOL_UNAVAILABLE"

    async def test_encoder_failure_truncates_response(self) -> None:
        with patch(
            "homeflix.streaming.controller.build_live_transcode_command",
            return_value=["sh", "-c", "printf 'PARTIAL'; echo boom >&2; exit 3"],
        ):
            async with self.client.get(
                f"/api/stream/{self.items['Other']}"
            ) as response:
                assert response.status == 200
                with self.assertRaises(aiohttp.ClientError):
                    await response.read()

    async def test_client_disconnect_kills_encoder(self) -> None:
        controller = self.services.stream_controller
        with patch(
            "homeflix.streaming.controller.build_live_transcode_command",
            return_value=["sh", "-c", "exec cat /dev/zero"],
        ):
            response = await self.client.get(f"/api/stream/{self.items['Other']}")
            assert response.status == 200
            await response.content.read(100)
            assert len(controller.active_processes) == 1
            response.close()

            for _ in range(100):
                if not controller.active_processes:
                    break
                await asyncio.sleep(0.05)

        assert not controller.active_processes


    async def test_streaming_error_kills_encoder(self) -> None:
        controller = self.services.stream_controller
        with (
            patch(
                "homeflix.streaming.controller.build_live_transcode_command",
                return_value=["sh", "-c", "exec cat /dev/zero"],
            ),
            patch.object(
                controller, "_pipe", new=AsyncMock(side_effect=RuntimeError("boom"))
            ),
        ):
            async with self.client.get(
                f"/api/stream/{self.items['Other']}"
            ) as response:
                assert response.status == 200
                with self.assertRaises(aiohttp.ClientError):
                    await response.read()

        assert not controller.active_processes


class TestTranscodeApi(HomeflixApiTestCase):
    """Tests for /api/transcode endpoints."""

    async def test_job_status(self) -> None:
        job_id = await self.completed_job_id()

        async with self.client.get(f"/api/transcode/{job_id}") as response:
            assert response.status == 200
            data = await response.json()

        assert data["id"] == job_id
        assert data["media_item_id"] == self.items["Other"]
        assert data["status"] == "completed"
        assert data["progress_percent"] == 100
        assert data["playlist_filename"] == "master.m3u8"

    async def test_invalid_job_id(self) -> None:
        async with self.client.get("/api/transcode/not-a-uuid") as response:
            assert response.status == 400
            assert (await response.json())["code"] == "INVALID_ID_FORMAT"

    async def test_unknown_job(self) -> None:
        async with self.client.get(
            "/api/transcode/3f2504e0-4f89-41d3-9a0c-0305e82c3301"
        ) as response:
            assert response.status == 404

    async def test_playlist_and_segment(self) -> None:
        job_id = await self.completed_job_id()

        async with self.client.get(f"/api/transcode/{job_id}/master.m3u8") as response:
            assert response.status == 200
            assert response.headers["Content-Type"] == "application/vnd.apple.mpegurl"
            assert response.headers["Cache-Control"] == "no-cache"
            assert (await response.text()).startswith("#EXTM3U")

        async with self.client.get(
            f"/api/v1/transcode/{job_id}/segment_000.ts"
        ) as response:
            assert response.status == 200
            assert response.headers["Content-Type"] == "video/mp2t"
            assert await response.read() == b"SEGMENT"

    async def test_rejected_file_names(self) -> None:
        job_id = await self.completed_job_id()

        for name in ("notes.txt", "..ts", ".hidden.ts", "master.m3u8.bak"):
            async with self.client.get(f"/api/transcode/{job_id}/{name}") as response:
                assert response.status == 400, name

    async def test_missing_segment(self) -> None:
        job_id = await self.completed_job_id()

        async with self.client.get(f"/api/transcode/{job_id}/segment_999.ts") as response:
            assert response.status == 404
