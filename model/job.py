# model/job.py
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4
from pydantic import BaseModel, Field
from util.enums import OutputMode


class JobState(str, Enum):
    CREATED = "created"
    ACQUIRING = "acquiring"
    TRANSCRIBING = "transcribing"
    SUMMARIZING = "summarizing"
    TRANSCRIPT_ONLY_DONE = "transcript_only_done"
    DONE = "done"
    FAILED = "failed"


def new_job_id() -> str:
    return uuid4().hex


class JobRequest(BaseModel):
    source_ref: str
    mode: OutputMode = OutputMode.SUMMARY
    word_budget: int = Field(default=400, ge=1)
    instructions: Optional[str] = None
    client_ip: str = "unknown"
    user_agent: Optional[str] = None


class Job(BaseModel):
    id: str = Field(default_factory=new_job_id)
    source_ref: str
    mode: OutputMode = OutputMode.SUMMARY
    word_budget: int = 400
    instructions: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_request(cls, request: JobRequest) -> "Job":
        return cls(
            source_ref=request.source_ref,
            mode=request.mode,
            word_budget=request.word_budget,
            instructions=request.instructions,
        )
