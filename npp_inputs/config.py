"""
Configuration for the NPP input harmonization pipeline.

Note on MODIS band values:
    MOD13Q1 NDVI is stored as int16 scaled by 10000, so NDVI = DN × 0.0001.
    MOD11A2 LST_Day_1km is stored in Kelvin scaled by 50, so
    LST(°C) = DN × 0.02 − 273.15. The scale must be applied before the
    offset: (DN − 273.15) × 0.02 is a different (wrong) number.

Note on ERA5-Land radiation:
    surface_solar_radiation_downwards_hourly is accumulated J/m² per hour.
    Summing 16 days of hourly samples and dividing by 1e6 gives MJ/m².

Note on MOD16A2:
    ET and PET share the same scale factor (0.1), so the We ratio
    ET/PET × 0.5 + 0.5 is computed on raw DN without rescaling.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class ConfigurationError(ValueError):
    """Invalid pipeline configuration (anchors, scale, series alignment)."""


# ─── Paths ───────────────────────────────────────────────────────
ROOT = Path(__file__).parent.parent
DATA_DIR = ROOT / "data"
DIAGNOSTICS_DIR = DATA_DIR / "diagnostics"

# ─── Temporal ────────────────────────────────────────────────────
# Window starts; each accumulated source is reduced over [anchor, anchor + 16d)
PERIOD_ANCHORS = ["2018-01-01", "2018-01-17", "2018-02-02", "2018-02-18"]
WINDOW_DAYS = 16
# NDVI filter end = last anchor + 1 day (filterDate end is exclusive)
NATIVE_END_PAD_DAYS = 1
DATE_FORMAT = "yyyy-MM-dd"  # Earth Engine (Joda) pattern for img.date().format

# ─── Spatial ─────────────────────────────────────────────────────
ROI_ASSET = "users/leobeckerdaluz/FIXED_shapes/mesoregionRS"
MASK_ASSET = "users/leobeckerdaluz/FIXED/soybeanMask_mesoregionRS"
CRS_WGS84 = "EPSG:4326"
SCALE_M_PX = 250  # common grid; 1000 also used in practice

# ─── Vegetation index (MOD13Q1, 16-day native composite) ─────────
NDVI_COLLECTION = "MODIS/061/MOD13Q1"
NDVI_SOURCE_BAND = "NDVI"
NDVI_SCALE_FACTOR = 0.0001
NDVI_BAND = "NDVI"

# ─── Land surface temperature (MOD11A2, 8-day composite) ─────────
LST_COLLECTION = "MODIS/061/MOD11A2"
LST_SOURCE_BAND = "LST_Day_1km"
LST_SCALE_FACTOR = 0.02
KELVIN_OFFSET = 273.15
LST_BAND = "LST"

# ─── Solar radiation (ERA5-Land, hourly) ─────────────────────────
SOL_COLLECTION = "ECMWF/ERA5_LAND/HOURLY"
SOL_SOURCE_BAND = "surface_solar_radiation_downwards_hourly"
J_PER_MJ = 1e6
SOL_BAND = "SOL"

# ─── Water stress (MOD16A2, 8-day composite) ─────────────────────
WE_COLLECTION = "MODIS/061/MOD16A2"
WE_NUMERATOR_BAND = "ET"
WE_DENOMINATOR_BAND = "PET"
WE_BAND = "We"

# ─── Productivity model ──────────────────────────────────────────
TOPT = 24.85   # optimal temperature, °C
LUEMAX = 0.926  # maximum light-use efficiency

# ─── GEE Settings ────────────────────────────────────────────────
GEE_MAX_PIXELS = 1e13


@dataclass(frozen=True)
class PipelineConfig:
    """
    Immutable run configuration, built once and passed to every component.

    `roi` is either an Earth Engine FeatureCollection asset id or a path to
    a local vector file (see geo_utils.load_region).
    """
    anchors: tuple = tuple(PERIOD_ANCHORS)
    scale_m_px: float = SCALE_M_PX
    roi: str = ROI_ASSET
    mask_asset: str = MASK_ASSET
    crs: str = CRS_WGS84
    topt: float = TOPT
    luemax: float = LUEMAX
    window_days: int = WINDOW_DAYS

    def __post_init__(self) -> None:
        object.__setattr__(self, "anchors", tuple(self.anchors))
        if self.scale_m_px <= 0:
            raise ConfigurationError(f"scale_m_px must be positive, got {self.scale_m_px}")
        if self.window_days <= 0:
            raise ConfigurationError(f"window_days must be positive, got {self.window_days}")
        if self.luemax <= 0:
            raise ConfigurationError(f"luemax must be positive, got {self.luemax}")
