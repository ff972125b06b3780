from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from valhalla_api.context import AppContext, get_context


router = APIRouter(tags=["metrics"])


@router.api_route("/metrics", methods=["GET", "HEAD"], response_class=PlainTextResponse)
async def metrics(ctx: AppContext = Depends(get_context)) -> PlainTextResponse:
    return PlainTextResponse(ctx.metrics.render(), media_type=ctx.metrics.content_type)
