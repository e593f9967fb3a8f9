# controller/summary_controller.py
import asyncio
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from controller.controller_dependencies import (
    RateLimited,
    admit,
    client_ip,
    get_summary_service,
    summary_query,
    upload_acquirer,
    upload_options,
)
from core.streaming import make_event_stream
from core.upload_acquirer import FileUploadAcquirer
from model.api import DataResponse, SummaryOptions, SummaryQuery
from service.summary_service import JobHandle, SummaryService
from util.constants import DISCONNECT_POLL_SECONDS, InternalURIs
from util.enums import OutputMode
from util.errors import PipelineError, to_app_error

logger = logging.getLogger(__name__)

summary_router = APIRouter(dependencies=[RateLimited])


async def _await_text(request: Request, handle: JobHandle) -> str:
    """
    Wait for the job's text. A plain handler is not cancelled when the client
    goes away, so poll for the disconnect and cancel the job ourselves.
    """
    waiter = asyncio.ensure_future(handle.result())
    try:
        while not waiter.done():
            await asyncio.wait({waiter}, timeout=DISCONNECT_POLL_SECONDS)
            if not waiter.done() and await request.is_disconnected():
                logger.info("summary.disconnect job=%s", handle.job.id)
                handle.cancel()
        return waiter.result()
    except PipelineError as e:
        raise to_app_error(e)
    finally:
        if not waiter.done():
            # Handler cancelled; result() passes that on to the job
            waiter.cancel()


def _log_success(request: Request, handle: JobHandle) -> None:
    logger.info(
        "summary.ok job=%s src=%s ip=%s ua=%s ts=%s",
        handle.job.id,
        handle.job.source_ref,
        client_ip(request),
        request.headers.get("user-agent") or "unknown",
        datetime.now(timezone.utc).isoformat(),
    )


def _stream(handle: JobHandle) -> StreamingResponse:
    return StreamingResponse(
        make_event_stream(handle),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


def _stream_mode(options: SummaryOptions) -> OutputMode:
    return OutputMode.TRANSCRIPT_ONLY if options.transcriptOnly else OutputMode.SUMMARY


def _upload_ref(acquirer: FileUploadAcquirer) -> str:
    return f"upload:{acquirer.filename}"


@summary_router.get(InternalURIs.SUMMARY, response_model=DataResponse)
async def get_summary(
    request: Request,
    query: SummaryQuery = Depends(summary_query),
    service: SummaryService = Depends(get_summary_service),
) -> DataResponse:
    handle = admit(service, request, query, OutputMode.SUMMARY, source_ref=query.url)
    text = await _await_text(request, handle)
    _log_success(request, handle)
    return DataResponse(data=text)


@summary_router.get(InternalURIs.SUMMARY_SSE)
async def get_summary_sse(
    request: Request,
    query: SummaryQuery = Depends(summary_query),
    service: SummaryService = Depends(get_summary_service),
):
    handle = admit(service, request, query, _stream_mode(query), source_ref=query.url)
    return _stream(handle)


@summary_router.get(InternalURIs.TRANSCRIPT, response_model=DataResponse)
async def get_transcript(
    request: Request,
    query: SummaryQuery = Depends(summary_query),
    service: SummaryService = Depends(get_summary_service),
) -> DataResponse:
    handle = admit(
        service, request, query, OutputMode.TRANSCRIPT_ONLY, source_ref=query.url
    )
    return DataResponse(data=await _await_text(request, handle))


@summary_router.post(InternalURIs.UPLOAD_SUMMARY, response_model=DataResponse)
async def upload_summary(
    request: Request,
    options: SummaryOptions = Depends(upload_options),
    acquirer: FileUploadAcquirer = Depends(upload_acquirer),
    service: SummaryService = Depends(get_summary_service),
) -> DataResponse:
    handle = admit(
        service,
        request,
        options,
        OutputMode.SUMMARY,
        source_ref=_upload_ref(acquirer),
        acquirer=acquirer,
    )
    text = await _await_text(request, handle)
    _log_success(request, handle)
    return DataResponse(data=text)


@summary_router.post(InternalURIs.UPLOAD_SUMMARY_SSE)
async def upload_summary_sse(
    request: Request,
    options: SummaryOptions = Depends(upload_options),
    acquirer: FileUploadAcquirer = Depends(upload_acquirer),
    service: SummaryService = Depends(get_summary_service),
):
    handle = admit(
        service,
        request,
        options,
        _stream_mode(options),
        source_ref=_upload_ref(acquirer),
        acquirer=acquirer,
    )
    return _stream(handle)


@summary_router.post(InternalURIs.UPLOAD_TRANSCRIPT, response_model=DataResponse)
async def upload_transcript(
    request: Request,
    acquirer: FileUploadAcquirer = Depends(upload_acquirer),
    service: SummaryService = Depends(get_summary_service),
) -> DataResponse:
    handle = admit(
        service,
        request,
        SummaryOptions(),
        OutputMode.TRANSCRIPT_ONLY,
        source_ref=_upload_ref(acquirer),
        acquirer=acquirer,
    )
    return DataResponse(data=await _await_text(request, handle))
