from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from core import media_downloader
from core.entities import MediaHandle
from core.media_downloader import AUTH_REQUIRED_MESSAGE, YtDlpDownloader, classify_download_error
from util.errors import AcquisitionFailed

VIDEO_URL = "https://www.youtube.com/watch?v=N-ZNfuCdkUo"


@pytest.mark.unit
@pytest.mark.parametrize(
    "stderr",
    [
        "ERROR: [youtube] abc: Sign in to confirm you're not a bot",
        "ERROR: [youtube] abc: Private video. Sign in if you've been granted access",
        "WARNING: could not load cookie jar\nERROR: boom",
    ],
)
def test_auth_failures_get_the_cookie_hint(stderr: str) -> None:
    err = classify_download_error(stderr)
    assert isinstance(err, AcquisitionFailed)
    assert err.message == AUTH_REQUIRED_MESSAGE


@pytest.mark.unit
def test_other_failures_keep_the_last_error_line() -> None:
    stderr = "WARNING: something minor\nERROR: [youtube] abc: Video unavailable\n"
    err = classify_download_error(stderr)
    assert err.message == "Failed to download video: [youtube] abc: Video unavailable"


@pytest.mark.unit
def test_unknown_failure_without_output() -> None:
    assert classify_download_error("").message == "Failed to download video: unknown error"


@pytest.mark.unit
def test_download_args_extract_audio_into_workdir(tmp_path: Path) -> None:
    downloader = YtDlpDownloader(audio_format="mp3", audio_quality="64K", ffmpeg_location="/opt/ffmpeg")

    args = downloader._download_args(VIDEO_URL, tmp_path)

    assert args[:3] == [sys.executable, "-m", "yt_dlp"]
    assert args[-2:] == ["--", VIDEO_URL]
    assert args[args.index("--audio-format") + 1] == "mp3"
    assert args[args.index("--audio-quality") + 1] == "64K"
    assert args[args.index("--output") + 1] == str(tmp_path / "audio.%(ext)s")
    assert args[args.index("--ffmpeg-location") + 1] == "/opt/ffmpeg"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_acquire_returns_handle_for_produced_file(tmp_path: Path, monkeypatch) -> None:
    async def fake_run(args):
        (tmp_path / "audio.mp3").write_bytes(b"x" * 2048)
        return 0, b"", b""

    monkeypatch.setattr(media_downloader, "_run_ytdlp", fake_run)

    handle = await YtDlpDownloader(audio_format="mp3").acquire(VIDEO_URL, tmp_path)

    assert handle.path == tmp_path / "audio.mp3"
    assert handle.size_bytes == 2048
    assert handle.pending_deletion is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_acquire_nonzero_exit_is_classified(tmp_path: Path, monkeypatch) -> None:
    async def fake_run(args):
        return 1, b"", b"ERROR: [youtube] abc: Video unavailable"

    monkeypatch.setattr(media_downloader, "_run_ytdlp", fake_run)

    with pytest.raises(AcquisitionFailed, match="Video unavailable"):
        await YtDlpDownloader().acquire(VIDEO_URL, tmp_path)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_acquire_without_output_file_fails(tmp_path: Path, monkeypatch) -> None:
    async def fake_run(args):
        return 0, b"", b""

    monkeypatch.setattr(media_downloader, "_run_ytdlp", fake_run)

    with pytest.raises(AcquisitionFailed, match="no audio file"):
        await YtDlpDownloader().acquire(VIDEO_URL, tmp_path)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_release_is_safe_to_repeat(tmp_path: Path) -> None:
    path = tmp_path / "audio.mp3"
    path.write_bytes(b"abc")
    handle = MediaHandle(path=path, size_bytes=3)
    downloader = YtDlpDownloader()

    await downloader.release(handle)
    await downloader.release(handle)

    assert not path.exists()


@pytest.mark.asyncio
@pytest.mark.unit
async def test_fetch_info_parses_json(monkeypatch) -> None:
    seen = {}

    async def fake_run(args):
        seen["args"] = args
        return 0, json.dumps({"id": "abc", "title": "t"}).encode(), b""

    monkeypatch.setattr(media_downloader, "_run_ytdlp", fake_run)

    meta = await YtDlpDownloader().fetch_info(VIDEO_URL)

    assert meta == {"id": "abc", "title": "t"}
    assert "--skip-download" in seen["args"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_fetch_info_rejects_garbage(monkeypatch) -> None:
    async def fake_run(args):
        return 0, b"not json", b""

    monkeypatch.setattr(media_downloader, "_run_ytdlp", fake_run)

    with pytest.raises(AcquisitionFailed, match="metadata"):
        await YtDlpDownloader().fetch_info(VIDEO_URL)
