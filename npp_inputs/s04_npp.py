"""
NPP Invocation
==============
Hand the harmonized inputs to a productivity model, either for the whole
schedule (compute_batch) or for one period (compute_single), and count
valid pixels per source so footprint / resolution mismatches are visible
before a single-period result is trusted.

Building results only builds Earth Engine descriptions. The materialize
helpers at the bottom (materialize_pixel_counts, download_url) are the
only calls that hit the server.
"""
from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

import ee
import pandas as pd

from . import config
from .config import ConfigurationError
from .s02_series import RasterSeries

logger = logging.getLogger(__name__)

N_SOURCES = 4


class ProductivityModel(Protocol):
    """External NPP formula."""

    def compute_single(self, ndvi, lst, sol, we, topt: float, luemax: float) -> ee.Image:
        ...

    def compute_batch(self, ndvi, lst, sol, we, topt: float, luemax: float) -> ee.ImageCollection:
        ...


def load_model(target: str) -> ProductivityModel:
    """
    Resolve "package.module:attr" to a model instance.

    If attr is a class it is instantiated with no arguments.
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"Model must be given as 'module:attr', got {target!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import model module {module_name!r}: {e}") from e
    try:
        obj = getattr(module, attr)
    except AttributeError as e:
        raise ConfigurationError(f"{module_name!r} has no attribute {attr!r}") from e
    model = obj() if isinstance(obj, type) else obj
    for method in ("compute_single", "compute_batch"):
        if not callable(getattr(model, method, None)):
            raise ConfigurationError(f"{target} does not provide {method}()")
    return model


@dataclass(frozen=True)
class ModelInputBundle:
    ndvi: ee.Image
    lst: ee.Image
    sol: ee.Image
    we: ee.Image
    topt: float = config.TOPT
    luemax: float = config.LUEMAX
    date: str | None = None

    def images(self) -> dict[str, ee.Image]:
        """Output band name → image, in model argument order."""
        return {
            config.NDVI_BAND: self.ndvi,
            config.LST_BAND: self.lst,
            config.SOL_BAND: self.sol,
            config.WE_BAND: self.we,
        }


@dataclass(frozen=True)
class PeriodResult:
    npp: ee.Image
    pixel_counts: ee.Dictionary
    date: str | None = None


def _require_four(series: Sequence[RasterSeries]) -> None:
    if len(series) != N_SOURCES:
        raise ConfigurationError(
            f"Expected {N_SOURCES} series (NDVI, LST, SOL, We), got {len(series)}"
        )


def check_aligned(series: Sequence[RasterSeries]) -> int:
    """
    Return the common period count of the four series.

    Raises:
        ConfigurationError: wrong number of series or unequal lengths
    """
    _require_four(series)
    sizes = {s.source: s.size() for s in series}
    if len(set(sizes.values())) != 1:
        raise ConfigurationError(f"Series lengths differ, cannot align periods: {sizes}")
    return next(iter(sizes.values()))


def bundle_for_period(
    series: Sequence[RasterSeries],
    index: int,
    topt: float = config.TOPT,
    luemax: float = config.LUEMAX,
) -> ModelInputBundle:
    """Pick period `index` from each of the (ndvi, lst, sol, we) series."""
    _require_four(series)
    ndvi, lst, sol, we = series
    date = next((s.date_at(index) for s in series if s.is_windowed), None)
    return ModelInputBundle(
        ndvi=ndvi.image_at(index),
        lst=lst.image_at(index),
        sol=sol.image_at(index),
        we=we.image_at(index),
        topt=topt,
        luemax=luemax,
        date=date,
    )


class NPPInvoker:
    def __init__(self, model: ProductivityModel, region, scale_m_px: float,
                 max_pixels: float = config.GEE_MAX_PIXELS):
        self.model = model
        self.region = region
        self.scale_m_px = scale_m_px
        self.max_pixels = max_pixels

    def compute_for_schedule(
        self,
        series: Sequence[RasterSeries],
        topt: float,
        luemax: float,
        validate: bool = True,
    ) -> ee.ImageCollection:
        """
        One NPP image per period, in schedule order.

        With validate=False only the series count is checked and nothing is
        sent to the server; the caller must run check_aligned() before the
        returned collection is materialized.
        """
        if validate:
            n_periods = check_aligned(series)
            print(f"  Computing NPP for {n_periods} aligned periods")
        else:
            _require_four(series)
        ndvi, lst, sol, we = (s.to_collection() for s in series)
        return self.model.compute_batch(ndvi, lst, sol, we, topt, luemax)

    def compute_for_period(self, bundle: ModelInputBundle) -> PeriodResult:
        npp = self.model.compute_single(
            bundle.ndvi, bundle.lst, bundle.sol, bundle.we,
            bundle.topt, bundle.luemax,
        )
        return PeriodResult(npp=npp, pixel_counts=self.pixel_counts(bundle), date=bundle.date)

    def pixel_counts(self, bundle: ModelInputBundle) -> ee.Dictionary:
        """Valid-pixel count per source over the region at the shared scale (lazy)."""
        counts = {}
        for band, image in bundle.images().items():
            stats = image.reduceRegion(
                reducer=ee.Reducer.count(),
                geometry=self.region,
                scale=self.scale_m_px,
                maxPixels=self.max_pixels,
            )
            counts[band] = stats.get(band)
        return ee.Dictionary(counts)


# ─── Materialize ─────────────────────────────────────────────────

def materialize_pixel_counts(pixel_counts: ee.Dictionary, date: str | None = None) -> pd.DataFrame:
    """
    Fetch the pixel counts (one getInfo call).

    Returns:
        DataFrame with columns: date, source, pixel_count, matches_max
    """
    info = pixel_counts.getInfo() or {}
    rows = []
    for band in (config.NDVI_BAND, config.LST_BAND, config.SOL_BAND, config.WE_BAND):
        count = info.get(band)
        rows.append({
            "date": date,
            "source": band,
            "pixel_count": int(count) if count is not None else None,
        })
    df = pd.DataFrame(rows)

    counts = df["pixel_count"].dropna()
    reference = counts.max() if not counts.empty else None
    df["matches_max"] = df["pixel_count"] == reference
    if counts.nunique() > 1 or counts.size < len(df):
        logger.warning(
            "Valid-pixel counts differ between sources%s: %s",
            f" ({date})" if date else "",
            dict(zip(df["source"], df["pixel_count"])),
        )
    return df


def download_url(image: ee.Image, name: str, region) -> str:
    """Download URL for an NPP image, clipped to `region` (a geometry)."""
    return image.getDownloadURL({"name": name, "region": region})
