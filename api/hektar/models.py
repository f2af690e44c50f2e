"""
Feature collection types used by the sponsorship flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

RASTER_ID_FIELD = "RasterID"
PATEN_ID_FIELD = "PatenID"

UINT64_MAX = 2**64 - 1


def _property(properties: dict[str, Any], name: str) -> Any:
    # Stored datasets use both "RasterID" and "rasterid".
    if name in properties:
        return properties[name]
    lowered = name.lower()
    for key, value in properties.items():
        if isinstance(key, str) and key.lower() == lowered:
            return value
    return None


def _as_uint(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 0 <= value <= UINT64_MAX else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and 0 <= value <= UINT64_MAX else None
    if isinstance(value, str):
        raw = value.strip()
        if raw.isascii() and raw.isdigit() and int(raw) <= UINT64_MAX:
            return int(raw)
    return None


def _is_index_key(key: Any) -> bool:
    key = str(key)
    return key.isascii() and key.isdigit() and key == str(int(key))


@dataclass(frozen=True)
class FeatureRecord:
    index: int
    raster_id: int | None
    paten_id: int | None
    properties: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_entry(cls, index: int, entry: Any) -> FeatureRecord | None:
        """
        Build a record from one stored feature, or None for non-feature entries.

        A feature without a readable RasterID is kept (it still occupies its
        position) but can never be matched.
        """
        if not isinstance(entry, dict):
            return None
        properties = entry.get("properties")
        if not isinstance(properties, dict):
            properties = {}
        paten_id = _property(properties, PATEN_ID_FIELD)
        return cls(
            index=index,
            raster_id=_as_uint(_property(properties, RASTER_ID_FIELD)),
            paten_id=paten_id if isinstance(paten_id, int) and not isinstance(paten_id, bool) else None,
            properties=properties,
        )


@dataclass(frozen=True)
class CollectionSnapshot:
    path: str
    records: tuple[FeatureRecord, ...] = ()

    def __len__(self) -> int:
        return len(self.records)

    @classmethod
    def from_value(cls, path: str, value: Any) -> CollectionSnapshot:
        """
        Normalize what the store returns for a collection.

        - list: dense array, `null` holes are deleted positions
        - dict: sparse array keyed by decimal index
        - None: empty or missing collection
        """
        if isinstance(value, list):
            entries = list(enumerate(value))
        elif isinstance(value, dict):
            # Only canonical keys ("1", not "01") address an array position.
            entries = sorted(
                ((int(k), v) for k, v in value.items() if _is_index_key(k)),
                key=lambda entry: entry[0],
            )
        else:
            entries = []

        records = []
        for index, entry in entries:
            record = FeatureRecord.from_entry(index, entry)
            if record is not None:
                records.append(record)
        return cls(path=path, records=tuple(records))


@dataclass(frozen=True)
class Match:
    index: int
    raster_id: int
    record: FeatureRecord


@dataclass
class AssignmentResult:
    path: str
    requested: list[int]
    applied: list[int] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.applied)
