"""
Dataset upload pages and endpoint (basic auth).
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse, HTMLResponse
from fastapi.templating import Jinja2Templates

from auth import dependencies as auth_dependencies
from core.config import Settings, get_settings
from core.store import DocumentStore, StoreError, StoreTimeoutError, get_store

from . import service

logger = logging.getLogger(__name__)

UPLOAD_DIR = Path(__file__).resolve().parent
STATIC_DIR = UPLOAD_DIR / "static"
templates = Jinja2Templates(directory=str(UPLOAD_DIR / "templates"))

router = APIRouter(prefix="/update", dependencies=[Depends(auth_dependencies.require_basic_auth)])


@router.get("", response_class=HTMLResponse)
async def update_page(request: Request, settings: Settings = Depends(get_settings)) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "update.page.html",
        {"upload_url": f"{settings.route_prefix}/update/upload", "prefix": settings.route_prefix},
    )


@router.get("/static/{file_path:path}")
async def static_file(file_path: str) -> FileResponse:
    root = STATIC_DIR.resolve()
    target = (root / file_path).resolve()
    if not target.is_relative_to(root) or not target.is_file():
        raise HTTPException(status_code=404, detail="Not found.")
    return FileResponse(target)


@router.post("/upload", response_class=HTMLResponse)
async def upload_dataset(
    request: Request,
    file: UploadFile | None = File(default=None, alias="myFile"),
    projectname: str | None = Form(default=None),
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> HTMLResponse:
    try:
        result = await service.store_upload(file, projectname, store=store, settings=settings)
    except StoreTimeoutError as exc:
        logger.error("store_timeout projectname=%s error=%s", projectname, exc)
        raise HTTPException(status_code=504, detail="Document store timed out.") from exc
    except StoreError as exc:
        logger.error("store_unavailable projectname=%s error=%s", projectname, exc)
        raise HTTPException(status_code=502, detail="Document store is unavailable.") from exc

    return templates.TemplateResponse(
        request,
        "received.page.html",
        {"result": result, "prefix": settings.route_prefix},
    )
