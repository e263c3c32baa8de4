"""
Per-Source Raster Series
========================
Build the four model inputs as Earth Engine image descriptions:

    NDVI – MOD13Q1, native 16-day composites, filtered over the whole range
    LST  – MOD11A2 8-day composites, mean over each 16-day window
    SOL  – ERA5-Land hourly radiation, sum over each 16-day window
    We   – MOD16A2 8-day ET/PET, summed per window, then ET/PET × 0.5 + 0.5

Every image goes through the same tail: convert units → rename → clip to
the region → reproject to the shared scale → set the `date` property.
Reduction always happens at native resolution; the image is resampled
exactly once, at the end.

Nothing here talks to the server except RasterSeries.size() on the native
NDVI series, which has to ask the server how many composites fall in range.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable

import ee

from . import config
from .s01_schedule import Period, Schedule

# Window modes
NATIVE = "native"
WINDOWED = "windowed"

# Reductions
IDENTITY = "identity"
MEAN = "mean"
SUM = "sum"


# ─── Unit conversions ────────────────────────────────────────────

def scale_ndvi(image: ee.Image) -> ee.Image:
    """MOD13Q1 DN → NDVI."""
    return image.multiply(config.NDVI_SCALE_FACTOR)


def lst_to_celsius(image: ee.Image) -> ee.Image:
    """MOD11A2 DN → °C. Scale first, then subtract the Kelvin offset."""
    return image.multiply(config.LST_SCALE_FACTOR).subtract(config.KELVIN_OFFSET)


def joules_to_megajoules(image: ee.Image) -> ee.Image:
    """J/m² → MJ/m²."""
    return image.divide(config.J_PER_MJ)


def water_stress_ratio(image: ee.Image) -> ee.Image:
    """
    We = (ET / PET) × 0.5 + 0.5 on a window-summed ET/PET image.

    ET == PET (no stress) gives exactly 1.0; ET == 0 gives exactly 0.5.
    Pixels with PET == 0 come out masked (Earth Engine division by zero).
    """
    et = image.select(config.WE_NUMERATOR_BAND)
    pet = image.select(config.WE_DENOMINATOR_BAND)
    return et.divide(pet).multiply(0.5).add(0.5)


# ─── Source policies ─────────────────────────────────────────────

@dataclass(frozen=True)
class SourcePolicy:
    """How one native collection becomes one aligned series."""
    name: str
    collection_id: str
    source_bands: tuple[str, ...]
    window_mode: str
    reduction: str
    convert: Callable[[ee.Image], ee.Image]
    band_name: str


VEGETATION = SourcePolicy(
    name="vegetation",
    collection_id=config.NDVI_COLLECTION,
    source_bands=(config.NDVI_SOURCE_BAND,),
    window_mode=NATIVE,
    reduction=IDENTITY,
    convert=scale_ndvi,
    band_name=config.NDVI_BAND,
)

TEMPERATURE = SourcePolicy(
    name="temperature",
    collection_id=config.LST_COLLECTION,
    source_bands=(config.LST_SOURCE_BAND,),
    window_mode=WINDOWED,
    reduction=MEAN,
    convert=lst_to_celsius,
    band_name=config.LST_BAND,
)

RADIATION = SourcePolicy(
    name="radiation",
    collection_id=config.SOL_COLLECTION,
    source_bands=(config.SOL_SOURCE_BAND,),
    window_mode=WINDOWED,
    reduction=SUM,
    convert=joules_to_megajoules,
    band_name=config.SOL_BAND,
)

WATER_STRESS = SourcePolicy(
    name="water_stress",
    collection_id=config.WE_COLLECTION,
    source_bands=(config.WE_NUMERATOR_BAND, config.WE_DENOMINATOR_BAND),
    window_mode=WINDOWED,
    reduction=SUM,
    convert=water_stress_ratio,
    band_name=config.WE_BAND,
)

# Argument order of the productivity model: ndvi, lst, sol, we
SOURCE_ORDER = (VEGETATION, TEMPERATURE, RADIATION, WATER_STRESS)


# ─── Series containers ───────────────────────────────────────────

@dataclass(frozen=True)
class RasterSeriesEntry:
    image: ee.Image
    band_name: str
    date: str
    scale: float


@dataclass(frozen=True)
class RasterSeries:
    """
    Ordered images of one source on the shared grid.

    Windowed sources keep their entries client-side (one per period).
    The native NDVI source only has a server-side collection, since the
    number of composites in range is known to Earth Engine, not to us.
    """
    source: str
    band_name: str
    scale: float
    entries: tuple[RasterSeriesEntry, ...] | None = None
    native_collection: ee.ImageCollection | None = None

    def __post_init__(self) -> None:
        if (self.entries is None) == (self.native_collection is None):
            raise ValueError("RasterSeries needs exactly one of entries / native_collection")

    @property
    def is_windowed(self) -> bool:
        return self.entries is not None

    def size(self) -> int:
        """Number of periods. Triggers one server round-trip for native series."""
        if self.entries is not None:
            return len(self.entries)
        return int(self.native_collection.size().getInfo())

    def image_at(self, index: int) -> ee.Image:
        if self.entries is not None:
            return self.entries[index].image
        return ee.Image(self.native_collection.toList(index + 1).get(index))

    def date_at(self, index: int) -> str | None:
        if self.entries is not None:
            return self.entries[index].date
        return None

    def to_collection(self) -> ee.ImageCollection:
        if self.entries is not None:
            return ee.ImageCollection([e.image for e in self.entries])
        return self.native_collection

    def with_images(self, fn: Callable[[ee.Image], ee.Image]) -> "RasterSeries":
        """Apply an image → image transform to every entry; returns a new series."""
        if self.entries is not None:
            return replace(
                self,
                entries=tuple(replace(e, image=fn(e.image)) for e in self.entries),
            )
        return replace(self, native_collection=self.native_collection.map(fn))


# ─── Builder ─────────────────────────────────────────────────────

def _no_data_image(bands: tuple[str, ...]) -> ee.Image:
    """Fully masked image carrying `bands`; keeps empty-window reductions band-complete."""
    return (
        ee.Image.constant([0] * len(bands))
        .rename(list(bands))
        .toFloat()
        .updateMask(0)
    )


class SeriesBuilder:
    """Builds one RasterSeries per SourcePolicy on a shared region and grid."""

    def __init__(self, region, scale_m_px: float, crs: str = config.CRS_WGS84):
        self.region = region
        self.scale_m_px = scale_m_px
        self.crs = crs

    def build(self, policy: SourcePolicy, schedule: Schedule) -> RasterSeries:
        if policy.window_mode == NATIVE:
            return self._build_native(policy, schedule.native_filter_range)
        if policy.window_mode != WINDOWED:
            raise ValueError(f"Unknown window mode: {policy.window_mode}")

        entries = tuple(
            RasterSeriesEntry(
                image=self.build_window(policy, period),
                band_name=policy.band_name,
                date=period.start_iso,
                scale=self.scale_m_px,
            )
            for period in schedule.periods
        )
        return RasterSeries(
            source=policy.name,
            band_name=policy.band_name,
            scale=self.scale_m_px,
            entries=entries,
        )

    def build_all(self, schedule: Schedule, policies=SOURCE_ORDER) -> list[RasterSeries]:
        return [self.build(p, schedule) for p in policies]

    def query(self, policy: SourcePolicy, period: Period) -> ee.ImageCollection:
        return (
            ee.ImageCollection(policy.collection_id)
            .filterBounds(self.region)
            .filterDate(period.start_iso, period.end_iso)
            .select(list(policy.source_bands))
        )

    def reduce(self, policy: SourcePolicy, collection: ee.ImageCollection) -> ee.Image:
        """
        Collapse one window to one image.

        The placeholder is fully masked, so it never contributes to a pixel
        that has data; a window with no images reduces to a no-data image.
        """
        padded = collection.merge(
            ee.ImageCollection([_no_data_image(policy.source_bands)])
        )
        if policy.reduction == MEAN:
            return padded.mean()
        if policy.reduction == SUM:
            return padded.sum()
        raise ValueError(f"Reduction {policy.reduction!r} is not valid for windowed sources")

    def normalize(self, policy: SourcePolicy, image: ee.Image, date) -> ee.Image:
        return (
            policy.convert(image)
            .rename(policy.band_name)
            .clip(self.region)
            .reproject(crs=self.crs, scale=self.scale_m_px)
            .set("date", date)
        )

    def build_window(self, policy: SourcePolicy, period: Period) -> ee.Image:
        reduced = self.reduce(policy, self.query(policy, period))
        return self.normalize(policy, reduced, period.start_iso)

    def _build_native(self, policy: SourcePolicy, date_range: Period) -> RasterSeries:
        def _prepare(img):
            return self.normalize(policy, img, img.date().format(config.DATE_FORMAT))

        collection = self.query(policy, date_range).map(_prepare)
        return RasterSeries(
            source=policy.name,
            band_name=policy.band_name,
            scale=self.scale_m_px,
            native_collection=collection,
        )
