# model/api.py
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator
from util.functions import is_youtube_url


class SummaryOptions(BaseModel):
    words: int = Field(default=400, ge=1)
    prompt: Optional[str] = Field(default=None, max_length=2000)
    transcriptOnly: bool = False


class SummaryQuery(SummaryOptions):
    url: str

    @field_validator("url")
    @classmethod
    def _youtube_url(cls, v: str) -> str:
        if not is_youtube_url(v):
            raise ValueError("Invalid YouTube URL")
        return v


class DataResponse(BaseModel):
    data: str


class VideoInfo(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    thumbnailUrl: Optional[str] = None
    channel: Optional[str] = None
    duration: Optional[int] = None


class VideoInfoResponse(BaseModel):
    success: bool = True
    data: VideoInfo


class ServerStatus(BaseModel):
    running: bool
    url: str
    port: int
    activeRequests: int
    capacity: int
    uptime: float
    uptimeHuman: str


class ErrorResponse(BaseModel):
    ok: Literal[False] = False
    error: str
    message: str
