# core/entities.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import ClassVar, Literal, Union


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MediaHandle:
    """
    Locally acquired audio for one job, stored inside that job's scope.
    `pending_deletion` flips the moment release starts, not when it finishes.
    """

    path: Path
    size_bytes: int
    pending_deletion: bool = False


@dataclass(frozen=True)
class AdmissionSlot:
    job_id: str
    acquired_at: datetime = field(default_factory=_utcnow)


def _check_percent(percent: int) -> None:
    if not 0 <= percent <= 100:
        raise ValueError(f"progress percent out of range: {percent}")


@dataclass(frozen=True)
class ProcessingEvent:
    message: str
    percent: int

    status: ClassVar[Literal["processing"]] = "processing"
    terminal: ClassVar[bool] = False

    def __post_init__(self) -> None:
        _check_percent(self.percent)


@dataclass(frozen=True)
class DoneEvent:
    payload: str
    percent: int = 100

    status: ClassVar[Literal["done"]] = "done"
    terminal: ClassVar[bool] = True

    def __post_init__(self) -> None:
        _check_percent(self.percent)


@dataclass(frozen=True)
class ErrorEvent:
    message: str
    percent: int = 0

    status: ClassVar[Literal["error"]] = "error"
    terminal: ClassVar[bool] = True

    def __post_init__(self) -> None:
        _check_percent(self.percent)


ProgressEvent = Union[ProcessingEvent, DoneEvent, ErrorEvent]
