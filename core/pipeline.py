# core/pipeline.py
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional
from core.entities import DoneEvent, ErrorEvent, MediaHandle, ProcessingEvent
from core.progress import ProgressEmitter
from core.scope import ResourceScopes, ScopeHandle
from core.stages import MediaAcquirer, Summarizer, Transcriber
from model.job import Job, JobState
from util.constants import Progress
from util.enums import OutputMode
from util.errors import (
    AcquisitionFailed,
    JobCancelled,
    PipelineError,
    ProcessingFailed,
    ResourceCleanupFailed,
)
from util.functions import format_bytes
from util.timing import timed_stage

logger = logging.getLogger(__name__)

_TRANSITIONS: Dict[JobState, FrozenSet[JobState]] = {
    JobState.CREATED: frozenset({JobState.ACQUIRING, JobState.FAILED}),
    JobState.ACQUIRING: frozenset({JobState.TRANSCRIBING, JobState.FAILED}),
    JobState.TRANSCRIBING: frozenset(
        {JobState.SUMMARIZING, JobState.TRANSCRIPT_ONLY_DONE, JobState.FAILED}
    ),
    JobState.SUMMARIZING: frozenset({JobState.DONE, JobState.FAILED}),
    JobState.TRANSCRIPT_ONLY_DONE: frozenset({JobState.DONE}),
    JobState.DONE: frozenset(),
    JobState.FAILED: frozenset(),
}


class IllegalTransition(RuntimeError):
    pass


@dataclass
class JobOutcome:
    job_id: str
    state: JobState
    text: Optional[str] = None
    error: Optional[PipelineError] = None
    cleanup_errors: List[ResourceCleanupFailed] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is JobState.DONE


@dataclass
class _Run:
    job: Job
    acquirer: MediaAcquirer
    state: JobState = JobState.CREATED
    media: Optional[MediaHandle] = None
    history: List[JobState] = field(default_factory=lambda: [JobState.CREATED])
    cleanup_errors: List[ResourceCleanupFailed] = field(default_factory=list)


class PipelineOrchestrator:
    """
    Drives one job through Acquire -> Transcribe -> (Summarize) inside its own
    working area, publishing checkpoints to the job's ProgressEmitter.

    Cleanup contract: whatever happens (stage error, cancellation, bug), the
    media file is released and the scope disposed before run() returns or
    re-raises. Cleanup failures are diagnostics on the outcome, never the outcome.
    """

    def __init__(
        self,
        *,
        acquirer: MediaAcquirer,
        transcriber: Transcriber,
        summarizer: Summarizer,
        scopes: ResourceScopes,
    ) -> None:
        self._acquirer = acquirer
        self._transcriber = transcriber
        self._summarizer = summarizer
        self._scopes = scopes

    async def run(
        self,
        job: Job,
        emitter: ProgressEmitter,
        *,
        acquirer: Optional[MediaAcquirer] = None,
    ) -> JobOutcome:
        """`acquirer` overrides the default source for this job only (e.g. an upload)."""
        run = _Run(job=job, acquirer=acquirer or self._acquirer)
        try:
            scope = self._scopes.open(job.id)
        except Exception as e:
            logger.error("pipeline.scope.error job=%s", job.id, exc_info=True)
            error = ProcessingFailed()
            error.__cause__ = e
            return self._fail(run, emitter, error)

        outcome: Optional[JobOutcome] = None
        async with scope:
            try:
                text = await self._drive(run, scope, emitter)
                outcome = JobOutcome(job_id=job.id, state=run.state, text=text)
            except asyncio.CancelledError:
                self._fail(run, emitter, JobCancelled())
                await self._release_media(run)
                raise
            except PipelineError as e:
                outcome = self._fail(run, emitter, e)
            except Exception as e:
                # Not a stage failure; still owed exactly one terminal event
                logger.error("pipeline.unexpected job=%s", job.id, exc_info=True)
                error = ProcessingFailed()
                error.__cause__ = e
                outcome = self._fail(run, emitter, error)
            finally:
                await self._release_media(run)

        if scope.cleanup_error is not None:
            run.cleanup_errors.append(scope.cleanup_error)
        outcome.cleanup_errors = list(run.cleanup_errors)
        logger.info(
            "pipeline.finish job=%s state=%s cleanup_errors=%d",
            job.id,
            outcome.state.value,
            len(outcome.cleanup_errors),
        )
        return outcome

    async def _drive(
        self, run: _Run, scope: ScopeHandle, emitter: ProgressEmitter
    ) -> str:
        job = run.job

        self._advance(run, JobState.ACQUIRING)
        emitter.emit(ProcessingEvent(*Progress.ACQUIRING))
        run.media = await self._acquire(run, scope)

        self._advance(run, JobState.TRANSCRIBING)
        emitter.emit(ProcessingEvent(*Progress.TRANSCRIBING))
        transcript = await self._transcribe(job, run.media)

        if job.mode is OutputMode.TRANSCRIPT_ONLY:
            await self._release_media(run)
            self._advance(run, JobState.TRANSCRIPT_ONLY_DONE)
            emitter.emit(DoneEvent(payload=transcript, percent=Progress.COMPLETE))
            self._advance(run, JobState.DONE)
            return transcript

        self._advance(run, JobState.SUMMARIZING)
        emitter.emit(ProcessingEvent(*Progress.SUMMARIZING))
        # Both branches run to completion; only the summary decides the outcome
        _, summary = await asyncio.gather(
            self._release_media(run),
            self._summarize(job, transcript),
            return_exceptions=True,
        )
        if isinstance(summary, BaseException):
            raise summary

        self._advance(run, JobState.DONE)
        emitter.emit(DoneEvent(payload=summary, percent=Progress.COMPLETE))
        return summary

    async def _acquire(self, run: _Run, scope: ScopeHandle) -> MediaHandle:
        job = run.job
        async with timed_stage(logger, "pipeline.acquire", job=job.id):
            try:
                handle = await run.acquirer.acquire(job.source_ref, scope.path)
            except AcquisitionFailed:
                raise
            except Exception as e:
                raise AcquisitionFailed(str(e) or type(e).__name__) from e
        logger.info(
            "pipeline.acquire.media job=%s size=%s",
            job.id,
            format_bytes(handle.size_bytes),
        )
        return handle

    async def _transcribe(self, job: Job, handle: MediaHandle) -> str:
        async with timed_stage(logger, "pipeline.transcribe", job=job.id):
            try:
                return await self._transcriber.transcribe(handle)
            except Exception as e:
                logger.error(
                    "pipeline.transcribe.error job=%s err=%s",
                    job.id,
                    type(e).__name__,
                    exc_info=True,
                )
                raise ProcessingFailed() from e

    async def _summarize(self, job: Job, transcript: str) -> str:
        async with timed_stage(
            logger, "pipeline.summarize", job=job.id, words=job.word_budget
        ):
            try:
                return await self._summarizer.summarize(
                    transcript, job.word_budget, job.instructions
                )
            except Exception as e:
                logger.error(
                    "pipeline.summarize.error job=%s err=%s",
                    job.id,
                    type(e).__name__,
                    exc_info=True,
                )
                raise ProcessingFailed() from e

    async def _release_media(self, run: _Run) -> None:
        handle = run.media
        if handle is None or handle.pending_deletion:
            return
        handle.pending_deletion = True
        try:
            await run.acquirer.release(handle)
        except Exception as e:
            run.cleanup_errors.append(
                ResourceCleanupFailed(
                    f"Failed to delete media: {e}", target=str(handle.path)
                )
            )
            logger.warning(
                "pipeline.media.release.error job=%s err=%s",
                run.job.id,
                type(e).__name__,
            )

    def _advance(self, run: _Run, target: JobState) -> None:
        if target not in _TRANSITIONS[run.state]:
            raise IllegalTransition(f"{run.state.value} -> {target.value}")
        logger.debug(
            "pipeline.state job=%s %s->%s", run.job.id, run.state.value, target.value
        )
        run.state = target
        run.history.append(target)

    def _fail(
        self, run: _Run, emitter: ProgressEmitter, error: PipelineError
    ) -> JobOutcome:
        if run.state not in (JobState.DONE, JobState.FAILED):
            run.state = JobState.FAILED
            run.history.append(JobState.FAILED)
        if not emitter.closed:
            emitter.emit(ErrorEvent(message=error.message, percent=emitter.last_percent))
        logger.warning(
            "pipeline.failed job=%s code=%s msg=%s", run.job.id, error.code, error.message
        )
        return JobOutcome(
            job_id=run.job.id,
            state=JobState.FAILED,
            error=error,
            cleanup_errors=list(run.cleanup_errors),
        )
