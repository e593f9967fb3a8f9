# core/progress.py
import asyncio
import logging
from collections import deque
from typing import AsyncIterator, Deque
from core.entities import ErrorEvent, ProgressEvent

logger = logging.getLogger(__name__)


class EmitterClosedError(RuntimeError):
    """Raised when something is emitted after the terminal event."""


class ProgressEmitter:
    """
    Single-producer / single-consumer progress channel for one job.

    Buffer policy: `emit` never blocks. When `maxsize` events are already
    waiting, the oldest buffered *processing* event is dropped to make room.
    Terminal events (done/error) are never dropped, so the buffer may briefly
    hold `maxsize + 1` items. Delivery order is emission order.
    """

    def __init__(self, job_id: str, maxsize: int = 16) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")
        self.job_id = job_id
        self._maxsize = maxsize
        self._buffer: Deque[ProgressEvent] = deque()
        self._ready = asyncio.Event()
        self._closed = False
        self._last_percent = 0
        self._terminal: ProgressEvent | None = None
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last_percent(self) -> int:
        return self._last_percent

    @property
    def terminal_event(self) -> ProgressEvent | None:
        return self._terminal

    def emit(self, event: ProgressEvent) -> None:
        if self._closed:
            raise EmitterClosedError(
                f"emitter for job {self.job_id} is closed; dropped {event.status} event"
            )
        # Errors may arrive at any point; everything else must not go backwards
        if not isinstance(event, ErrorEvent) and event.percent < self._last_percent:
            raise ValueError(
                f"progress went backwards: {event.percent} < {self._last_percent}"
            )

        if len(self._buffer) >= self._maxsize and not event.terminal:
            self._drop_oldest_processing()

        self._buffer.append(event)
        self._last_percent = max(self._last_percent, event.percent)
        if event.terminal:
            self._terminal = event
            self._closed = True
        self._ready.set()

    def _drop_oldest_processing(self) -> None:
        for i, queued in enumerate(self._buffer):
            if not queued.terminal:
                del self._buffer[i]
                self.dropped += 1
                logger.debug(
                    "progress.drop job=%s percent=%d", self.job_id, queued.percent
                )
                return

    async def events(self) -> AsyncIterator[ProgressEvent]:
        """Yield events in order; the iterator ends after the terminal event."""
        while True:
            while self._buffer:
                event = self._buffer.popleft()
                yield event
                if event.terminal:
                    return
            if self._closed:
                return
            self._ready.clear()
            await self._ready.wait()
