# controller/controller_dependencies.py
from typing import Optional
from fastapi import Depends, File, HTTPException, Query, Request, Response, UploadFile, status
from fastapi_limiter.depends import RateLimiter
from pydantic import ValidationError
from config.settings import settings
from core.stages import MediaAcquirer
from core.upload_acquirer import FileUploadAcquirer, upload_suffix
from model.api import SummaryOptions, SummaryQuery
from model.job import JobRequest
from service.summary_service import Accepted, JobHandle, SummaryService
from service.video_info_service import VideoInfoService
from util.enums import ErrorMessage, OutputMode
from util.errors import AcquisitionFailed, AdmissionRejected, AppError, to_app_error

_limiter = RateLimiter(times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS)


async def rate_limit(request: Request, response: Response) -> None:
    # The limiter needs Redis; RATE_LIMIT_ENABLED=false skips it entirely
    if settings.RATE_LIMIT_ENABLED:
        await _limiter(request, response)


def client_ip(request: Request) -> str:
    if settings.TRUST_PROXY:
        fwd = request.headers.get("x-forwarded-for")
        if fwd:
            return fwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def get_summary_service(request: Request) -> SummaryService:
    # Built once in the lifespan; the admission controller lives inside it
    return request.app.state.summary_service


def get_video_info_service(request: Request) -> VideoInfoService:
    return request.app.state.video_info_service


def _check_words(words: int) -> None:
    if not 1 <= words <= settings.MAX_SUMMARY_WORDS:
        raise AppError(f"words must be between 1 and {settings.MAX_SUMMARY_WORDS}")


def summary_query(
    url: str = Query(...),
    words: int = Query(default=settings.DEFAULT_SUMMARY_WORDS),
    prompt: Optional[str] = Query(default=None),
    transcriptOnly: bool = Query(default=False),
) -> SummaryQuery:
    _check_words(words)
    try:
        return SummaryQuery(url=url, words=words, prompt=prompt, transcriptOnly=transcriptOnly)
    except ValidationError as e:
        if any(err.get("loc") == ("url",) for err in e.errors()):
            info = ErrorMessage.INVALID_URL.value
            raise AppError(info.message, info.http_status)
        raise AppError(e.errors()[0].get("msg", "Invalid request"))


def upload_options(
    words: int = Query(default=settings.DEFAULT_SUMMARY_WORDS),
    prompt: Optional[str] = Query(default=None),
    transcriptOnly: bool = Query(default=False),
) -> SummaryOptions:
    _check_words(words)
    try:
        return SummaryOptions(words=words, prompt=prompt, transcriptOnly=transcriptOnly)
    except ValidationError as e:
        raise AppError(e.errors()[0].get("msg", "Invalid request"))


async def upload_acquirer(file: UploadFile = File(...)) -> FileUploadAcquirer:
    """
    Read the uploaded media (bounded by MAX_UPLOAD_MB) before admission,
    so a rejected or invalid upload never reaches the pipeline.
    """
    try:
        upload_suffix(file.filename or "")
    except AcquisitionFailed as e:
        raise AppError(e.message)

    max_bytes = settings.MAX_UPLOAD_MB * 1024 * 1024
    # Hard cap while reading (works even without Content-Length)
    blob = await file.read(max_bytes + 1)
    if len(blob) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={
                "ok": False,
                "error": "file_too_large",
                "maxMb": settings.MAX_UPLOAD_MB,
            },
        )
    if not blob:
        raise AppError("No file provided")
    return FileUploadAcquirer(file.filename or "", blob, max_bytes=max_bytes)


def admit(
    service: SummaryService,
    request: Request,
    options: SummaryOptions,
    mode: OutputMode,
    *,
    source_ref: str,
    acquirer: Optional[MediaAcquirer] = None,
) -> JobHandle:
    """Submit a job or short-circuit with 503; never waits for a slot."""
    admission = service.submit(
        JobRequest(
            source_ref=source_ref,
            mode=mode,
            word_budget=options.words,
            instructions=options.prompt,
            client_ip=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        ),
        acquirer=acquirer,
    )
    if not isinstance(admission, Accepted):
        raise to_app_error(AdmissionRejected(admission.reason))
    return admission.handle


RateLimited = Depends(rate_limit)
