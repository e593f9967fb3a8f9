# util/types.py
from typing import Literal, TypedDict


# Flow: Narrow types for SSE progress frames.
EventStatus = Literal["processing", "done", "error"]


class ProgressFrame(TypedDict):
    status: EventStatus
    message: str
    progress: int

