"""
Hectare sponsorship API endpoint.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import PlainTextResponse

from auth import dependencies as auth_dependencies
from core.config import Settings, get_settings
from core.store import DocumentStore, StoreError, StoreTimeoutError, get_store

from . import service
from .matching import InvalidInputError

logger = logging.getLogger(__name__)

router = APIRouter()


def acknowledgment(raster_id: int) -> str:
    return f"Put hektar with ID {raster_id}...\n"


def _first(values: list[str] | None) -> str | None:
    # Repeated query parameters: the first occurrence wins.
    return values[0] if values else None


@router.get("/hektar")
async def assign_hektar(
    ids: list[str] | None = Query(default=None, alias="id"),
    area: list[str] | None = Query(default=None),
    _: dict = Depends(auth_dependencies.require_token),
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> Response:
    """
    Mark the cells with the given raster ids as sponsored.

    200 with one acknowledgment line per applied id, 404 with an empty body
    when nothing matched.
    """
    try:
        result = await service.assign(
            store,
            settings,
            raw_ids=_first(ids),
            area=_first(area),
        )
    except (InvalidInputError, service.InvalidAreaError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreTimeoutError as exc:
        logger.error("store_timeout area=%s error=%s", area, exc)
        raise HTTPException(status_code=504, detail="Document store timed out.") from exc
    except StoreError as exc:
        logger.error("store_unavailable area=%s error=%s", area, exc)
        raise HTTPException(status_code=502, detail="Document store is unavailable.") from exc

    if result.count == 0:
        return Response(status_code=404)

    body = "".join(acknowledgment(raster_id) for raster_id in result.applied)
    return PlainTextResponse(body)
