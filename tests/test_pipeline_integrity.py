"""
Cross-Module Pipeline Integrity Tests
=======================================
Validation tests that check consistency ACROSS modules.
No GEE connection required: pure static analysis.
"""
import importlib
import inspect
from pathlib import Path

import pytest

from npp_inputs import config, s02_series, s04_npp


# ─── Config Completeness ─────────────────────────────────────────

def test_all_output_dirs_are_path_objects():
    """All *_DIR config constants should be pathlib.Path objects."""
    dir_attrs = [
        attr for attr in dir(config)
        if attr.endswith("_DIR") and not attr.startswith("_")
    ]

    assert dir_attrs
    for attr in dir_attrs:
        value = getattr(config, attr)
        assert isinstance(value, Path), (
            f"config.{attr} = {value!r} is not a Path object"
        )


def test_default_anchors_are_one_window_apart():
    """Default anchors follow the 16-day MOD13Q1 compositing grid."""
    from datetime import date

    anchors = [date.fromisoformat(a) for a in config.PERIOD_ANCHORS]
    for prev, curr in zip(anchors, anchors[1:]):
        assert (curr - prev).days == config.WINDOW_DAYS


# ─── Policies vs Config ──────────────────────────────────────────

def test_policy_bands_come_from_config():
    expected = {
        "vegetation": (config.NDVI_COLLECTION, config.NDVI_BAND),
        "temperature": (config.LST_COLLECTION, config.LST_BAND),
        "radiation": (config.SOL_COLLECTION, config.SOL_BAND),
        "water_stress": (config.WE_COLLECTION, config.WE_BAND),
    }
    for policy in s02_series.SOURCE_ORDER:
        assert (policy.collection_id, policy.band_name) == expected[policy.name]


def test_only_ndvi_is_native():
    native = [p.name for p in s02_series.SOURCE_ORDER if p.window_mode == s02_series.NATIVE]
    assert native == ["vegetation"]


def test_bundle_band_order_matches_source_order():
    bundle = s04_npp.ModelInputBundle("n", "l", "s", "w")
    assert list(bundle.images()) == [p.band_name for p in s02_series.SOURCE_ORDER]


def test_materialize_covers_every_output_band():
    source = inspect.getsource(s04_npp.materialize_pixel_counts)
    for policy in s02_series.SOURCE_ORDER:
        const = {
            "NDVI": "NDVI_BAND", "LST": "LST_BAND", "SOL": "SOL_BAND", "We": "WE_BAND",
        }[policy.band_name]
        assert const in source


def test_no_client_side_materialization_in_builders():
    """Description-building modules must not call getInfo() outside RasterSeries.size()."""
    for mod_name in ("npp_inputs.s01_schedule", "npp_inputs.s03_harmonize"):
        source = inspect.getsource(importlib.import_module(mod_name))
        assert "getInfo" not in source, mod_name

    series_source = inspect.getsource(s02_series)
    size_source = inspect.getsource(s02_series.RasterSeries.size)
    assert series_source.count("getInfo") == size_source.count("getInfo") == 1


# ─── Import Chain ────────────────────────────────────────────────

def test_all_modules_import_successfully():
    """All pipeline modules should import without error."""
    modules = [
        "npp_inputs.config",
        "npp_inputs.gee_auth",
        "npp_inputs.geo_utils",
        "npp_inputs.s01_schedule",
        "npp_inputs.s02_series",
        "npp_inputs.s03_harmonize",
        "npp_inputs.s04_npp",
        "npp_inputs.pipeline",
    ]

    for mod_name in modules:
        try:
            importlib.import_module(mod_name)
        except Exception as e:
            pytest.fail(f"Failed to import {mod_name}: {e}")
