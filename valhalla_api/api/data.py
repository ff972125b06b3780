from __future__ import annotations

import re

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from valhalla_api.context import AppContext, get_context
from valhalla_api.errors import not_found_response
from valhalla_api.models.schemas import DataFilter, DataItemResponse, DataListResponse, ErrorResponse
from valhalla_api.services.runtime import utc_timestamp


router = APIRouter(prefix="/api/v1", tags=["data"])

_INTEGER = re.compile(r"[+-]?[0-9]+")


def get_data_filter(
    type: str | None = Query(default=None),
    status: str | None = Query(default=None),
) -> DataFilter:
    return DataFilter(type=type, status=status)


def parse_item_id(raw: str) -> int | None:
    """Strict integer parse of a path segment; anything else is None."""
    text = raw.strip()
    if not _INTEGER.fullmatch(text):
        return None
    try:
        return int(text)
    except ValueError:
        # Longer than the interpreter will convert; no catalog id is that large.
        return None


@router.api_route("/data", methods=["GET", "HEAD"], response_model=DataListResponse)
async def list_data(
    data_filter: DataFilter = Depends(get_data_filter),
    ctx: AppContext = Depends(get_context),
) -> DataListResponse:
    items = ctx.catalog.list(data_filter)
    return DataListResponse(count=len(items), data=items, timestamp=utc_timestamp())


@router.api_route(
    "/data/{item_id}",
    methods=["GET", "HEAD"],
    response_model=DataItemResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_data_item(item_id: str, ctx: AppContext = Depends(get_context)) -> DataItemResponse | JSONResponse:
    parsed = parse_item_id(item_id)
    item = ctx.catalog.get_by_id(parsed) if parsed is not None else None
    if item is None:
        shown = parsed if parsed is not None else item_id
        return not_found_response(f"Item with id {shown} not found")
    return DataItemResponse(data=item, timestamp=utc_timestamp())
