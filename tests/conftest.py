"""Pytest configuration and shared fixtures."""
import sys
from datetime import date, timedelta
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


class FakeDate:
    def __init__(self, iso: str):
        self.iso = iso

    def format(self, fmt):
        return self.iso


class FakeImage:
    """
    numpy-backed stand-in for ee.Image.

    Supports the band math, masking and metadata calls the pipeline makes,
    so conversions can be checked with real numbers and no Earth Engine.
    """

    def __init__(self, bands, mask=None, props=None, ops=None):
        self.bands = {k: np.asarray(v, dtype=float) for k, v in bands.items()}
        shape = next(iter(self.bands.values())).shape
        self.mask = np.ones(shape, dtype=bool) if mask is None else np.asarray(mask, dtype=bool)
        self.props = dict(props or {})
        self.ops = list(ops or [])

    def _with(self, bands=None, mask=None, op=None, props=None):
        return FakeImage(
            self.bands if bands is None else bands,
            self.mask if mask is None else mask,
            self.props if props is None else props,
            self.ops + ([op] if op else []),
        )

    def _arith(self, other, fn, name):
        if isinstance(other, FakeImage):
            rhs = next(iter(other.bands.values()))
            mask = self.mask & other.mask
        else:
            rhs, mask = other, self.mask
        return self._with({k: fn(v, rhs) for k, v in self.bands.items()}, mask, (name, other))

    def band_names(self):
        return list(self.bands)

    def select(self, names):
        names = [names] if isinstance(names, str) else list(names)
        return self._with({n: self.bands[n] for n in names}, op=("select", tuple(names)))

    def multiply(self, other):
        return self._arith(other, np.multiply, "multiply")

    def divide(self, other):
        return self._arith(other, np.divide, "divide")

    def add(self, other):
        return self._arith(other, np.add, "add")

    def subtract(self, other):
        return self._arith(other, np.subtract, "subtract")

    def rename(self, names):
        names = [names] if isinstance(names, str) else list(names)
        return self._with(dict(zip(names, self.bands.values())), op=("rename", tuple(names)))

    def updateMask(self, other):
        if isinstance(other, FakeImage):
            valid = next(iter(other.bands.values())) != 0
            mask = self.mask & other.mask & valid
        else:
            mask = self.mask & (other != 0)
        return self._with(mask=mask, op=("updateMask", other))

    def toFloat(self):
        return self._with(op=("toFloat",))

    def clip(self, region):
        return self._with(op=("clip", region))

    def reproject(self, crs=None, crsTransform=None, scale=None):
        props = dict(self.props, crs=crs, scale=scale)
        return self._with(props=props, op=("reproject", crs, scale))

    def set(self, key, value):
        return self._with(props=dict(self.props, **{key: value}), op=("set", key))

    def date(self):
        return FakeDate(self.props["system:time_start"])

    def values(self, band=None):
        band = band or next(iter(self.bands))
        return np.where(self.mask, self.bands[band], np.nan)

    def op_names(self):
        return [op[0] for op in self.ops]


@pytest.fixture
def fake_image():
    """FakeImage class, for building numpy-backed images in tests."""
    return FakeImage


@pytest.fixture
def sample_anchors():
    """Anchors used in the reference MODIS example."""
    return ["2018-01-01", "2018-01-17", "2018-02-02", "2018-02-18"]


@pytest.fixture
def sample_schedule(sample_anchors):
    from npp_inputs.s01_schedule import build_schedule
    return build_schedule(sample_anchors)


@pytest.fixture
def sample_polygon():
    """Sample polygon geometry for testing."""
    from shapely.geometry import Polygon
    return Polygon([(-54, -30), (-53, -30), (-53, -29), (-54, -29)])


@pytest.fixture
def make_series(fake_image):
    """Factory: windowed RasterSeries of `n` FakeImage entries."""
    from npp_inputs.s02_series import RasterSeries, RasterSeriesEntry

    def _make(band, n, values=(1.0, 2.0, 3.0, 4.0), mask=None, scale=250, start=date(2018, 1, 1)):
        entries = tuple(
            RasterSeriesEntry(
                image=fake_image({band: values}, mask=mask, props={"date": f"p{i}"}),
                band_name=band,
                date=(start + timedelta(days=16 * i)).isoformat(),
                scale=scale,
            )
            for i in range(n)
        )
        return RasterSeries(source=band.lower(), band_name=band, scale=scale, entries=entries)

    return _make
