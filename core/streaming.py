# core/streaming.py
import json
import logging
from typing import TYPE_CHECKING, AsyncIterator, Final, assert_never
from core.entities import DoneEvent, ErrorEvent, ProcessingEvent, ProgressEvent
from util.types import ProgressFrame

if TYPE_CHECKING:
    from service.summary_service import JobHandle

SSE_SEP: Final[str] = "\n\n"
logger = logging.getLogger(__name__)


def event_frame(event: ProgressEvent) -> ProgressFrame:
    """Wire shape of a progress event: {status, message, progress}."""
    if isinstance(event, ProcessingEvent):
        return {"status": "processing", "message": event.message, "progress": event.percent}
    if isinstance(event, DoneEvent):
        return {"status": "done", "message": event.payload, "progress": event.percent}
    if isinstance(event, ErrorEvent):
        return {"status": "error", "message": event.message, "progress": event.percent}
    assert_never(event)


def sse_line(obj: object) -> bytes:
    return ("data: " + json.dumps(obj, ensure_ascii=False, separators=(",", ":")) + SSE_SEP).encode(
        "utf-8"
    )


async def make_event_stream(handle: "JobHandle") -> AsyncIterator[bytes]:
    """
    Forward one job's progress as Server-Sent Events.
      - one `data:` frame per event, in emission order
      - stream ends right after the terminal frame
      - if the client goes away first (generator closed/cancelled), the job is cancelled
    """
    job_id = handle.job.id
    delivered = 0
    finished = False
    logger.info("stream.start job=%s", job_id)
    try:
        async for event in handle.events():
            yield sse_line(event_frame(event))
            delivered += 1
        finished = True
    finally:
        if not finished:
            logger.info("stream.disconnect job=%s delivered=%d", job_id, delivered)
            handle.cancel()
        else:
            logger.info("stream.done job=%s delivered=%d", job_id, delivered)
