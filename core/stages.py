# core/stages.py
from pathlib import Path
from typing import Optional, Protocol
from core.entities import MediaHandle


class MediaAcquirer(Protocol):
    async def acquire(self, source_ref: str, workdir: Path) -> MediaHandle:
        """Fetch media for `source_ref` into `workdir`. Raise AcquisitionFailed on failure."""
        ...

    async def release(self, handle: MediaHandle) -> None:
        """Delete acquired media. Calling it twice must be harmless."""
        ...


class Transcriber(Protocol):
    async def transcribe(self, handle: MediaHandle) -> str: ...


class Summarizer(Protocol):
    async def summarize(
        self, transcript: str, word_budget: int, instructions: Optional[str]
    ) -> str: ...
