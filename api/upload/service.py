"""
Dataset upload "service layer".

A replacement feature dataset arrives as a multipart file. Depending on
deployment it is either:
- relayed as-is (HTTP PUT) to FEATURES_URL, or
- decoded as JSON and written whole under <AREAS_ROOT>/<projectname>

The payload is never validated as GeoJSON; geometry is not our concern.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from fastapi import HTTPException, UploadFile

from core.config import Settings
from core.store import DocumentStore

logger = logging.getLogger(__name__)

_FORBIDDEN_PROJECT_CHARS = set("/.#$[]")


@dataclass(frozen=True)
class UploadResult:
    filename: str
    content_type: str | None
    size_bytes: int
    projectname: str
    destination: str


def validate_projectname(projectname: str | None) -> str:
    name = (projectname or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Missing projectname.")
    if _FORBIDDEN_PROJECT_CHARS.intersection(name):
        raise HTTPException(status_code=400, detail=f"Invalid projectname: {name!r}")
    return name


async def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read the upload into memory, enforcing a maximum size.
    """
    chunk_size = 1024 * 1024  # 1 MiB
    buf = bytearray()

    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Max is {max_bytes} bytes.",
            )

    return bytes(buf)


def decode_dataset(data: bytes) -> Any:
    try:
        return json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail="Uploaded file is not valid JSON.") from exc


async def relay_bytes(url: str, data: bytes, *, content_type: str | None, timeout_s: float) -> None:
    headers = {"Content-Type": content_type or "application/octet-stream"}
    try:
        async with httpx.AsyncClient(timeout=timeout_s) as client:
            resp = await client.put(url, content=data, headers=headers)
    except httpx.HTTPError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to relay upload: {exc}") from exc

    if not resp.is_success:
        raise HTTPException(
            status_code=502,
            detail=f"Upload relay failed with status {resp.status_code}: {resp.text[:300]}",
        )


async def store_upload(
    file: UploadFile,
    projectname: str | None,
    *,
    store: DocumentStore,
    settings: Settings,
) -> UploadResult:
    """
    High-level upload step; this is what the router calls.

    Store errors propagate so the router can map them.
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="Missing file.")
    name = validate_projectname(projectname)

    data = await read_upload_bytes(file, max_bytes=settings.max_upload_bytes)
    logger.info(
        "upload_received filename=%s size_bytes=%s content_type=%s projectname=%s",
        file.filename,
        len(data),
        file.content_type,
        name,
    )

    if settings.features_url:
        await relay_bytes(
            settings.features_url,
            data,
            content_type=file.content_type,
            timeout_s=settings.store_timeout_s,
        )
        destination = settings.features_url
    else:
        destination = settings.project_path(name)
        await store.set(destination, decode_dataset(data))

    logger.info("upload_stored projectname=%s destination=%s", name, destination)
    return UploadResult(
        filename=file.filename,
        content_type=file.content_type,
        size_bytes=len(data),
        projectname=name,
        destination=destination,
    )
