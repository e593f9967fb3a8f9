# util/errors.py
from fastapi import HTTPException, status
from util.enums import ErrorMessage


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)


class PipelineError(Exception):
    """Base for every failure a job can end with."""

    code: str = "pipeline_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AdmissionRejected(PipelineError):
    # Capacity exhausted; nothing ran, callers should retry later.
    code = "server_busy"

    def __init__(self, message: str = "at capacity") -> None:
        super().__init__(message)


class AcquisitionFailed(PipelineError):
    # Message is caller-actionable and surfaced verbatim.
    code = "acquisition_failed"


class ProcessingFailed(PipelineError):
    # Transcription / summarization failed. Backend details stay on __cause__.
    code = "processing_failed"

    def __init__(
        self, message: str = ErrorMessage.PROCESSING_FAILED.value.message
    ) -> None:
        super().__init__(message)


class JobCancelled(ProcessingFailed):
    code = "job_cancelled"

    def __init__(self, message: str = ErrorMessage.JOB_CANCELLED.value.message) -> None:
        super().__init__(message)


class ResourceCleanupFailed(PipelineError):
    """Disposal of a scope or media file failed. Diagnostic only, never a job outcome."""

    code = "cleanup_failed"

    def __init__(self, message: str, *, target: str) -> None:
        super().__init__(message)
        self.target = target


def to_app_error(exc: PipelineError) -> AppError:
    """Map a terminal pipeline error onto the HTTP envelope used by the blocking endpoints."""
    if isinstance(exc, AdmissionRejected):
        info = ErrorMessage.SERVER_BUSY.value
        return AppError(info.message, info.http_status)
    if isinstance(exc, AcquisitionFailed):
        return AppError(exc.message, status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, JobCancelled):
        return AppError(exc.message, ErrorMessage.JOB_CANCELLED.value.http_status)
    return AppError(exc.message, ErrorMessage.PROCESSING_FAILED.value.http_status)
