# main.py
from fastapi_limiter import FastAPILimiter
import routes
from contextlib import asynccontextmanager
from util.enums import Environment, Color
from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware
from config.settings import settings
from config.cache import close_redis, get_redis
from controller.controller_dependencies import client_ip
from core.admission import AdmissionController
from core.anthropic_client import AnthropicSummarizer
from core.media_downloader import YtDlpDownloader
from core.pipeline import PipelineOrchestrator
from core.scope import ResourceScopes
from core.transcriber import OpenAITranscriber
from fastapi.responses import JSONResponse
from model.api import ErrorResponse
from service.summary_service import SummaryService
from service.video_info_service import VideoInfoService
from util.constants import InternalURIs
from util.logger import init_logger


async def _real_ip(request: Request) -> str:
    return client_ip(request)


def build_services(app: FastAPI) -> None:
    """One admission controller per process, shared through app.state."""
    downloader = YtDlpDownloader()
    orchestrator = PipelineOrchestrator(
        acquirer=downloader,
        transcriber=OpenAITranscriber(),
        summarizer=AnthropicSummarizer(),
        scopes=ResourceScopes(settings.TEMP_DIR),
    )
    app.state.summary_service = SummaryService(
        AdmissionController(settings.MAX_CONCURRENT_JOBS),
        orchestrator,
        progress_buffer_size=settings.PROGRESS_BUFFER_SIZE,
    )
    app.state.video_info_service = VideoInfoService(downloader)


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    try:
        init_logger()
        print(f"{Color.GREEN}Initializing...{Color.RESET}")
        build_services(fastApi)
        if settings.RATE_LIMIT_ENABLED:
            redis = await get_redis()
            await FastAPILimiter.init(redis, identifier=_real_ip)
        print(
            f"{Color.BLUE}Server running on {settings.PUBLIC_URL}:{settings.PORT}{Color.RESET}"
        )
    except Exception as e:
        print("Failed to start:", e)
        raise

    try:
        yield
    finally:
        await fastApi.state.summary_service.shutdown()
        if settings.RATE_LIMIT_ENABLED:
            try:
                await close_redis()
            except Exception as e:
                print("Error closing Redis:", e)

        print(f"{Color.RED}Server Shutdown{Color.RESET}")


app: FastAPI = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ALLOWED_ORIGIN],
    allow_credentials=True,  # Allow cookies and other credentials
    allow_methods=["GET", "POST"],  # POST only for uploads
    allow_headers=["Content-Type", "Accept", "Last-Event-ID"],  # Allowed HTTP Headers
)


@app.get(InternalURIs.HEALTH)
async def healthz():
    return {"ok": True}


@app.exception_handler(429)
async def ratelimit_handler(request: Request, exc):
    return JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error="rate_limited",
            message="Too many requests from this IP, please try again later",
        ).model_dump(),
        headers={"Retry-After": str(settings.RATE_LIMIT_SECONDS)},
    )


routes.register_routes(app)

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host="127.0.0.1", port=settings.PORT, reload=reload)
