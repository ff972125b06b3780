from __future__ import annotations

from fastapi import APIRouter, Depends

from valhalla_api.context import AppContext, get_context
from valhalla_api.models.schemas import StatusResponse
from valhalla_api.services.runtime import memory_usage, process_uptime, utc_timestamp


router = APIRouter(prefix="/api/v1", tags=["status"])


@router.api_route("/status", methods=["GET", "HEAD"], response_model=StatusResponse)
async def get_status(ctx: AppContext = Depends(get_context)) -> StatusResponse:
    settings = ctx.settings
    return StatusResponse(
        application=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        timestamp=utc_timestamp(),
        uptime=process_uptime(),
        memory=memory_usage(),
    )
