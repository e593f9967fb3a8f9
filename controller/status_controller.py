# controller/status_controller.py
from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from config.settings import settings
from controller.controller_dependencies import get_summary_service
from model.api import ServerStatus
from service.summary_service import SummaryService
from util.constants import InternalURIs
from util.functions import format_duration

status_router = APIRouter()


@status_router.get(InternalURIs.STATUS, response_model=ServerStatus)
async def get_status(
    service: SummaryService = Depends(get_summary_service),
) -> ServerStatus:
    uptime = (datetime.now(timezone.utc) - service.started_at).total_seconds()
    return ServerStatus(
        running=True,
        url=settings.PUBLIC_URL,
        port=settings.PORT,
        activeRequests=service.admission.in_flight_count(),
        capacity=service.admission.capacity,
        uptime=uptime,
        uptimeHuman=format_duration(uptime),
    )
