# core/media_downloader.py
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from config.settings import settings
from core.entities import MediaHandle
from util.constants import AUDIO_FILE_STEM
from util.errors import AcquisitionFailed
from util.timing import timed

logger = logging.getLogger(__name__)

AUTH_MARKERS = ("Sign in", "cookie", "Private video")
AUTH_REQUIRED_MESSAGE = (
    "YouTube requires authentication. Please check your cookies configuration."
)


def classify_download_error(stderr: str) -> AcquisitionFailed:
    """
    Turn yt-dlp stderr into a caller-facing error.
    Auth/private-video failures get a fixed hint; anything else keeps yt-dlp's last ERROR line.
    """
    if any(marker in stderr for marker in AUTH_MARKERS):
        return AcquisitionFailed(AUTH_REQUIRED_MESSAGE)
    reason = ""
    for line in reversed(stderr.strip().splitlines()):
        line = line.strip()
        if line.startswith("ERROR:"):
            reason = line[len("ERROR:") :].strip()
            break
        if not reason and line:
            reason = line
    return AcquisitionFailed(f"Failed to download video: {reason or 'unknown error'}")


def _base_args() -> List[str]:
    args = [sys.executable, "-m", "yt_dlp", "--no-playlist", "--no-progress"]
    if settings.YTDLP_COOKIES_FILE:
        args += ["--cookies", settings.YTDLP_COOKIES_FILE]
    return args


async def _run_ytdlp(args: List[str]) -> tuple[int, bytes, bytes]:
    """
    Run yt-dlp and collect its output. If the awaiting task is cancelled the
    child process is killed before the cancellation propagates.
    """
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        logger.info("ytdlp.killed pid=%s", proc.pid)
        raise
    return proc.returncode or 0, stdout, stderr


class YtDlpDownloader:
    """
    Acquire stage: extract audio for a video URL into the job's working area.
    """

    def __init__(
        self,
        *,
        audio_format: str = settings.AUDIO_FORMAT,
        audio_quality: str = settings.AUDIO_QUALITY,
        ffmpeg_location: Optional[str] = settings.FFMPEG_LOCATION,
    ) -> None:
        self._format = audio_format
        self._quality = audio_quality
        self._ffmpeg = ffmpeg_location

    def _download_args(self, url: str, workdir: Path) -> List[str]:
        args = _base_args() + [
            "--extract-audio",
            "--audio-format",
            self._format,
            "--audio-quality",
            self._quality,
            "--prefer-free-formats",
            "--output",
            str(workdir / f"{AUDIO_FILE_STEM}.%(ext)s"),
        ]
        if self._ffmpeg:
            args += ["--ffmpeg-location", self._ffmpeg]
        return args + ["--", url]

    async def acquire(self, source_ref: str, workdir: Path) -> MediaHandle:
        with timed(logger, "ytdlp.download", dir=workdir.name):
            code, _, stderr = await _run_ytdlp(self._download_args(source_ref, workdir))
        err_text = stderr.decode("utf-8", errors="replace")
        if code != 0:
            logger.warning("ytdlp.download.error code=%d dir=%s", code, workdir.name)
            raise classify_download_error(err_text)

        target = workdir / f"{AUDIO_FILE_STEM}.{self._format}"
        try:
            size = target.stat().st_size
        except FileNotFoundError:
            raise AcquisitionFailed(
                "Failed to download video: no audio file was produced"
            ) from None
        return MediaHandle(path=target, size_bytes=size)

    async def release(self, handle: MediaHandle) -> None:
        await asyncio.to_thread(handle.path.unlink, missing_ok=True)
        logger.debug("ytdlp.media.deleted file=%s", handle.path.name)

    async def fetch_info(self, url: str) -> Dict[str, Any]:
        """Metadata only, nothing is written to disk."""
        args = _base_args() + ["--dump-single-json", "--skip-download", "--", url]
        with timed(logger, "ytdlp.info"):
            code, stdout, stderr = await _run_ytdlp(args)
        if code != 0:
            raise classify_download_error(stderr.decode("utf-8", errors="replace"))
        try:
            return json.loads(stdout)
        except ValueError:
            raise AcquisitionFailed("Failed to read video metadata") from None
