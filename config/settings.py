# config/settings.py
import os
import sys
from typing import Optional
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    PUBLIC_URL: str = Field(default="http://localhost", validation_alias="URL")
    PORT: int = Field(default=5050, validation_alias="PORT")
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0", validation_alias="REDIS_URL"
    )

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(..., validation_alias="ALLOWED_ORIGIN")
    RATE_LIMIT_ENABLED: bool = Field(default=True, validation_alias="RATE_LIMIT_ENABLED")
    RATE_LIMIT_TIMES: int = Field(default=10, validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(default=60, validation_alias="RATE_LIMIT_SECONDS")
    TRUST_PROXY: bool = Field(default=False, validation_alias="TRUST_PROXY")

    # Job pipeline
    MAX_CONCURRENT_JOBS: int = Field(default=2, ge=1, validation_alias="MAX_CONCURRENT_JOBS")
    TEMP_DIR: str = Field(default="./tmp", validation_alias="TEMP_DIR")
    PROGRESS_BUFFER_SIZE: int = Field(
        default=16, ge=1, validation_alias="PROGRESS_BUFFER_SIZE"
    )
    DEFAULT_SUMMARY_WORDS: int = 400
    MAX_SUMMARY_WORDS: int = Field(default=2000, validation_alias="MAX_SUMMARY_WORDS")
    # No deadline by default; the transport layer owns timeouts
    HTTP_TIMEOUT_SECONDS: Optional[float] = Field(
        default=None, validation_alias="HTTP_TIMEOUT_SECONDS"
    )

    # yt-dlp
    YTDLP_COOKIES_FILE: Optional[str] = Field(
        default=None, validation_alias="YTDLP_COOKIES_FILE"
    )
    FFMPEG_LOCATION: Optional[str] = Field(
        default=None, validation_alias="FFMPEG_LOCATION"
    )
    AUDIO_FORMAT: str = "mp3"
    AUDIO_QUALITY: str = Field(default="64K", validation_alias="AUDIO_QUALITY")

    # Uploads
    MAX_UPLOAD_MB: int = Field(default=25, ge=1, validation_alias="MAX_UPLOAD_MB")

    # Transcription (OpenAI-compatible audio API)
    OPENAI_API_KEY: str = Field(..., validation_alias="OPENAI_API_KEY")
    TRANSCRIBE_API_URL: str = Field(
        default="https://api.openai.com/v1/audio/transcriptions",
        validation_alias="TRANSCRIBE_API_URL",
    )
    TRANSCRIBE_MODEL: str = Field(default="whisper-1", validation_alias="TRANSCRIBE_MODEL")
    TRANSCRIBE_MAX_MB: int = Field(default=25, validation_alias="TRANSCRIBE_MAX_MB")

    # Anthropic Settings
    ANTHROPIC_API_KEY: str = Field(..., validation_alias="ANTHROPIC_API_KEY")
    ANTHROPIC_API_URL: str = Field(
        default="https://api.anthropic.com/v1/messages",
        validation_alias="ANTHROPIC_API_URL",
    )
    ANTHROPIC_MODEL: str = Field(..., validation_alias="ANTHROPIC_MODEL")
    ANTHROPIC_VERSION: str = Field(
        default="2023-06-01", validation_alias="ANTHROPIC_VERSION"
    )

    # Logging knobs
    LOGGER_NAME: str = "youtube-summary-api"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")

    # Prompts
    SUMMARY_SYSTEM_PROMPT: str = (
        "You summarize transcripts of online videos for busy readers.\n"
        "\n"
        "RULES:\n"
        "- Write in the language of the transcript unless the instructions say otherwise.\n"
        "- Stay within the requested word budget; shorter is fine, longer is not.\n"
        "- Cover the main points and key takeaways in the order they appear.\n"
        "- Do not invent facts that are not in the transcript.\n"
        "- Plain prose or short markdown bullet lists. No preamble such as "
        '"Here is a summary".\n'
        "- Follow any additional instructions from the user as long as they do not "
        "conflict with the rules above.\n"
    )


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
