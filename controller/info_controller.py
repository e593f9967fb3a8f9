# controller/info_controller.py
from fastapi import APIRouter, Depends, Query
from controller.controller_dependencies import RateLimited, get_video_info_service
from model.api import VideoInfoResponse
from service.video_info_service import VideoInfoService
from util.constants import InternalURIs

info_router = APIRouter(dependencies=[RateLimited])


@info_router.get(InternalURIs.INFO, response_model=VideoInfoResponse)
async def get_video_info(
    url: str = Query(...),
    service: VideoInfoService = Depends(get_video_info_service),
) -> VideoInfoResponse:
    return VideoInfoResponse(data=await service.get_info(url))
