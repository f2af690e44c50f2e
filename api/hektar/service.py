"""
Hectare sponsorship orchestration.

Flow:
1) Parse requested raster ids and resolve the target collection path
2) Fetch the whole collection once (snapshot)
3) Match ids against the snapshot (first-match-wins, caller order)
4) For each match, stamp properties/PatenID with the sponsor marker

Store errors propagate to the router, which maps them to 502/504. Writes that
already went through are kept; there is no rollback.

Positions come from a snapshot, so before each write the record at that
position is re-read. If it no longer carries the requested RasterID, the
collection is fetched again and the id is located afresh. A concurrent writer
can still move the record between that check and the merge-update.
"""

from __future__ import annotations

import html
import logging

from core.config import Settings
from core.store import DocumentStore, StoreError, join_path

from . import matching
from .models import PATEN_ID_FIELD, AssignmentResult, CollectionSnapshot, FeatureRecord, Match

logger = logging.getLogger(__name__)

_FORBIDDEN_AREA_CHARS = set("/.#$[]")


class InvalidAreaError(ValueError):
    pass


def resolve_collection_path(settings: Settings, area: str | None) -> str:
    area = html.unescape(area or "").strip()
    if not area:
        return settings.default_collection
    if _FORBIDDEN_AREA_CHARS.intersection(area):
        raise InvalidAreaError(f"Invalid area name: {area!r}")
    return settings.area_collection(area)


async def fetch_collection(store: DocumentStore, path: str) -> CollectionSnapshot:
    value = await store.get(path)
    snapshot = CollectionSnapshot.from_value(path, value)
    logger.debug("collection_fetched path=%s records=%s", path, len(snapshot))
    return snapshot


async def _still_at_position(store: DocumentStore, path: str, found: Match) -> bool:
    entry = await store.get(join_path(path, found.index))
    current = FeatureRecord.from_entry(found.index, entry)
    return current is not None and current.raster_id == found.raster_id


async def apply_match(
    store: DocumentStore,
    path: str,
    found: Match,
    *,
    marker: int,
    verify: bool = True,
) -> Match | None:
    """
    Write the sponsor marker for one match.

    Returns the match that was written (possibly relocated), or None when the
    raster id disappeared from the collection since the snapshot.
    """
    target: Match | None = found
    if verify and not await _still_at_position(store, path, found):
        logger.warning(
            "assignment_drift path=%s index=%s raster_id=%s",
            path,
            found.index,
            found.raster_id,
        )
        fresh = await fetch_collection(store, path)
        target = matching.find_first(fresh, found.raster_id)
        if target is None:
            logger.warning("assignment_vanished path=%s raster_id=%s", path, found.raster_id)
            return None

    await store.update(
        join_path(path, target.index),
        {f"properties/{PATEN_ID_FIELD}": marker},
    )
    logger.info(
        "assignment_applied path=%s index=%s raster_id=%s",
        path,
        target.index,
        target.raster_id,
    )
    return target


async def assign(
    store: DocumentStore,
    settings: Settings,
    *,
    raw_ids: str | None,
    area: str | None = None,
) -> AssignmentResult:
    raster_ids = matching.parse_identifiers(
        matching.split_tokens(raw_ids),
        strict=settings.strict_identifiers,
    )
    path = resolve_collection_path(settings, area)

    snapshot = await fetch_collection(store, path)
    result = AssignmentResult(path=path, requested=raster_ids)

    try:
        for found in matching.match(snapshot, raster_ids):
            applied = await apply_match(
                store,
                path,
                found,
                marker=settings.sponsor_marker,
                verify=settings.verify_before_write,
            )
            if applied is not None:
                result.applied.append(applied.raster_id)
    except StoreError:
        logger.error(
            "assignment_aborted path=%s applied=%s requested=%s",
            path,
            result.applied,
            raster_ids,
        )
        raise

    return result
