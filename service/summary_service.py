# service/summary_service.py
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Optional, Set, Union
from core.admission import AdmissionController
from core.entities import ErrorEvent, ProgressEvent
from core.pipeline import JobOutcome, PipelineOrchestrator
from core.progress import ProgressEmitter
from core.stages import MediaAcquirer
from model.job import Job, JobRequest
from util.errors import JobCancelled, ProcessingFailed

logger = logging.getLogger(__name__)


class JobHandle:
    """
    Caller-side view of one admitted job: its progress stream, its result,
    and a way to cancel it (e.g. on client disconnect).
    """

    def __init__(
        self,
        job: Job,
        emitter: ProgressEmitter,
        task: "asyncio.Task[JobOutcome]",
        settled: asyncio.Event,
    ) -> None:
        self.job = job
        self._emitter = emitter
        self._task = task
        self._settled = settled

    @property
    def done(self) -> bool:
        return self._task.done()

    def events(self) -> AsyncIterator[ProgressEvent]:
        return self._emitter.events()

    def cancel(self) -> bool:
        if self._task.done():
            return False
        logger.info("job.cancel job=%s", self.job.id)
        return self._task.cancel()

    async def outcome(self) -> JobOutcome:
        """Wait until the job has ended and its slot has been given back."""
        await self._settled.wait()
        return self._task.result()

    async def result(self) -> str:
        """
        Wait for the job and return its text, raising the job's PipelineError on failure.
        Cancelling the caller cancels the job as well.
        """
        try:
            await self._settled.wait()
        except asyncio.CancelledError:
            self.cancel()
            raise
        if self._task.cancelled():
            raise JobCancelled()
        outcome = self._task.result()
        if outcome.error is not None:
            raise outcome.error
        if outcome.text is None:
            raise ProcessingFailed()
        return outcome.text


@dataclass(frozen=True)
class Accepted:
    handle: JobHandle

    @property
    def job_id(self) -> str:
        return self.handle.job.id


@dataclass(frozen=True)
class Rejected:
    reason: str = "at capacity"


Admission = Union[Accepted, Rejected]


class SummaryService:
    """
    Admits jobs against the process-wide AdmissionController and runs each
    accepted job as its own asyncio task. The slot is released when the task
    ends, after the pipeline has emitted its terminal event and cleaned up.
    """

    def __init__(
        self,
        admission: AdmissionController,
        orchestrator: PipelineOrchestrator,
        *,
        progress_buffer_size: int = 16,
    ) -> None:
        self._admission = admission
        self._orchestrator = orchestrator
        self._buffer_size = progress_buffer_size
        self._tasks: Set["asyncio.Task[JobOutcome]"] = set()
        self._started_at = datetime.now(timezone.utc)

    @property
    def admission(self) -> AdmissionController:
        return self._admission

    @property
    def started_at(self) -> datetime:
        return self._started_at

    def submit(
        self, request: JobRequest, *, acquirer: Optional[MediaAcquirer] = None
    ) -> Admission:
        """
        Never blocks: either the job starts now or it is rejected.
        `acquirer` replaces the default media source for this job (uploads).
        """
        job = Job.from_request(request)
        if not self._admission.try_admit(job.id):
            logger.warning(
                "job.rejected ip=%s in_flight=%d",
                request.client_ip,
                self._admission.in_flight_count(),
            )
            return Rejected()

        emitter = ProgressEmitter(job.id, maxsize=self._buffer_size)
        settled = asyncio.Event()
        try:
            task = asyncio.create_task(
                self._orchestrator.run(job, emitter, acquirer=acquirer), name=f"job-{job.id}"
            )
        except BaseException:
            self._admission.release(job.id)
            raise
        self._tasks.add(task)
        # Runs even when the task is cancelled before its first step
        task.add_done_callback(lambda t: self._finish(job, emitter, t, settled))
        logger.info(
            "job.accepted job=%s mode=%s words=%d ip=%s",
            job.id,
            job.mode.value,
            job.word_budget,
            request.client_ip,
        )
        return Accepted(JobHandle(job, emitter, task, settled))

    def _finish(
        self,
        job: Job,
        emitter: ProgressEmitter,
        task: "asyncio.Task[JobOutcome]",
        settled: asyncio.Event,
    ) -> None:
        self._tasks.discard(task)
        if not emitter.closed:
            # Cancelled before the pipeline started, or the pipeline crashed
            error = JobCancelled() if task.cancelled() else ProcessingFailed()
            emitter.emit(ErrorEvent(message=error.message, percent=emitter.last_percent))
        self._admission.release(job.id)
        if not task.cancelled() and task.exception() is not None:
            logger.error("job.crashed job=%s", job.id, exc_info=task.exception())
        settled.set()

    async def shutdown(self) -> None:
        pending = [t for t in self._tasks if not t.done()]
        if not pending:
            return
        logger.info("job.shutdown cancelling=%d", len(pending))
        for t in pending:
            t.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
