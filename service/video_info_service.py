# service/video_info_service.py
import logging
from typing import Any, Dict, Optional
from core.media_downloader import YtDlpDownloader
from model.api import VideoInfo
from util.enums import ErrorMessage
from util.errors import AcquisitionFailed, AppError
from util.functions import is_youtube_url

logger = logging.getLogger(__name__)


def _thumbnail(meta: Dict[str, Any]) -> Optional[str]:
    if meta.get("thumbnail"):
        return meta["thumbnail"]
    thumbs = meta.get("thumbnails") or []
    return thumbs[-1].get("url") if thumbs and isinstance(thumbs[-1], dict) else None


def to_video_info(meta: Dict[str, Any]) -> VideoInfo:
    duration = meta.get("duration")
    return VideoInfo(
        id=str(meta.get("id") or ""),
        title=str(meta.get("title") or ""),
        description=meta.get("description"),
        thumbnailUrl=_thumbnail(meta),
        channel=meta.get("channel") or meta.get("uploader"),
        duration=int(duration) if isinstance(duration, (int, float)) else None,
    )


class VideoInfoService:
    """Metadata lookup for a video URL; does not touch the job pipeline."""

    def __init__(self, downloader: YtDlpDownloader) -> None:
        self._downloader = downloader

    async def get_info(self, url: str) -> VideoInfo:
        if not is_youtube_url(url):
            info = ErrorMessage.INVALID_URL.value
            raise AppError(info.message, info.http_status)
        try:
            meta = await self._downloader.fetch_info(url)
        except AcquisitionFailed as e:
            logger.warning("info.error err=%s", e.code)
            raise AppError(e.message)
        info = to_video_info(meta)
        logger.info("info.ok video=%s", info.id)
        return info
