# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    TEST = "test"
    PROD = "prod"


class OutputMode(str, Enum):
    SUMMARY = "summary"
    TRANSCRIPT_ONLY = "transcript-only"


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    INVALID_URL = ErrorInfo("Invalid YouTube URL", status.HTTP_400_BAD_REQUEST)
    SERVER_BUSY = ErrorInfo(
        "Server is busy. Please try again later.", status.HTTP_503_SERVICE_UNAVAILABLE
    )
    PROCESSING_FAILED = ErrorInfo(
        "Something went wrong during video processing", status.HTTP_502_BAD_GATEWAY
    )
    JOB_CANCELLED = ErrorInfo("Job cancelled", 499)
