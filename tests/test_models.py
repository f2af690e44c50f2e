"""Tests for collection snapshot normalization."""

from __future__ import annotations

from hektar.models import CollectionSnapshot, FeatureRecord

from .fakes import feature


def test_dense_array_keeps_positions_across_null_holes():
    snap = CollectionSnapshot.from_value("features", [feature(1), None, feature(3)])

    assert [(r.index, r.raster_id) for r in snap.records] == [(0, 1), (2, 3)]


def test_sparse_object_is_ordered_by_numeric_index():
    snap = CollectionSnapshot.from_value(
        "features",
        {"10": feature(100), "2": feature(20), "name": "ignored"},
    )

    assert [(r.index, r.raster_id) for r in snap.records] == [(2, 20), (10, 100)]


def test_non_canonical_index_keys_are_ignored():
    snap = CollectionSnapshot.from_value(
        "features",
        {"1": feature(1), "01": feature(2), "007": feature(7)},
    )

    assert [(r.index, r.raster_id) for r in snap.records] == [(1, 1)]


def test_missing_collection_is_empty():
    assert len(CollectionSnapshot.from_value("features", None)) == 0
    assert len(CollectionSnapshot.from_value("features", "not-a-collection")) == 0


def test_property_names_are_case_insensitive():
    record = FeatureRecord.from_entry(0, {"properties": {"rasterid": 12, "patenid": 1}})

    assert record is not None
    assert record.raster_id == 12
    assert record.paten_id == 1


def test_raster_id_accepts_integral_floats_and_digit_strings():
    assert FeatureRecord.from_entry(0, feature(12.0)).raster_id == 12
    assert FeatureRecord.from_entry(0, feature("12")).raster_id == 12


def test_unreadable_raster_id_never_matches_zero():
    for value in (None, -1, 1.5, "x", True):
        record = FeatureRecord.from_entry(0, feature(value))
        assert record is not None
        assert record.raster_id is None


def test_feature_without_properties_keeps_its_position():
    snap = CollectionSnapshot.from_value("features", [{"type": "Feature"}, feature(5)])

    assert [(r.index, r.raster_id) for r in snap.records] == [(0, None), (1, 5)]


def test_non_object_entries_are_skipped():
    assert FeatureRecord.from_entry(0, "feature") is None
    assert FeatureRecord.from_entry(0, 17) is None
