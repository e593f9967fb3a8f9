# core/upload_acquirer.py
import asyncio
import logging
from pathlib import Path, PurePath
from config.settings import settings
from core.entities import MediaHandle
from util.constants import AUDIO_FILE_STEM
from util.errors import AcquisitionFailed
from util.functions import format_bytes

logger = logging.getLogger(__name__)

# Formats the transcription endpoint accepts as-is
UPLOAD_EXTENSIONS = frozenset(
    {".mp3", ".mp4", ".mpeg", ".mpga", ".m4a", ".wav", ".webm", ".ogg"}
)


def upload_suffix(filename: str) -> str:
    """Lower-cased extension of a client filename; raises when it is not a supported media type."""
    suffix = PurePath(filename or "").suffix.lower()
    if suffix not in UPLOAD_EXTENSIONS:
        raise AcquisitionFailed(
            f"Unsupported file type: {suffix or 'none'}. "
            f"Allowed: {', '.join(sorted(UPLOAD_EXTENSIONS))}"
        )
    return suffix


class FileUploadAcquirer:
    """
    Acquire stage for one uploaded file: the bytes already read from the
    request are written into the job's working area.
    One instance per job; `source_ref` is only used for logging.
    """

    def __init__(
        self,
        filename: str,
        content: bytes,
        *,
        max_bytes: int = settings.MAX_UPLOAD_MB * 1024 * 1024,
    ) -> None:
        self.filename = filename
        self._content = content
        self._max_bytes = max_bytes

    async def acquire(self, source_ref: str, workdir: Path) -> MediaHandle:
        size = len(self._content)
        if size == 0:
            raise AcquisitionFailed("No file provided")
        if size > self._max_bytes:
            raise AcquisitionFailed(
                f"File too large: {format_bytes(size)} "
                f"(max {format_bytes(self._max_bytes)})"
            )
        target = workdir / f"{AUDIO_FILE_STEM}{upload_suffix(self.filename)}"
        await asyncio.to_thread(target.write_bytes, self._content)
        # The scope owns the copy from here on
        self._content = b""
        logger.info("upload.stored ref=%s size=%s", source_ref, format_bytes(size))
        return MediaHandle(path=target, size_bytes=size)

    async def release(self, handle: MediaHandle) -> None:
        await asyncio.to_thread(handle.path.unlink, missing_ok=True)
        logger.debug("upload.media.deleted file=%s", handle.path.name)
