"""
Shared Mask Harmonization
=========================
Apply one categorical validity mask (e.g. a soybean mask) to every image
of every input series, so NDVI, LST, SOL and We share the same valid-pixel
footprint before they reach the productivity model.

updateMask only ever narrows a mask, so applying the same mask twice is
the same as applying it once.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import ee

from .config import ConfigurationError
from .s02_series import RasterSeries


@dataclass(frozen=True)
class SharedMask:
    """Read-only validity raster; non-zero pixels are valid."""
    image: ee.Image
    asset_id: str | None = None

    def apply(self, image: ee.Image) -> ee.Image:
        return image.updateMask(self.image)


def load_mask(asset_id: str) -> SharedMask:
    return SharedMask(image=ee.Image(asset_id), asset_id=asset_id)


def apply_mask(series: Sequence[RasterSeries], mask: SharedMask) -> list[RasterSeries]:
    """Mask every entry of every series; input series are left untouched."""
    return [s.with_images(mask.apply) for s in series]


def check_schema(series: Sequence[RasterSeries]) -> None:
    """
    Every entry of a series must carry the series band name and scale.

    Raises:
        ConfigurationError: on the first inconsistent entry
    """
    for s in series:
        for entry in s.entries or ():
            if entry.band_name != s.band_name or entry.scale != s.scale:
                raise ConfigurationError(
                    f"{s.source}: entry {entry.date} has band={entry.band_name} "
                    f"scale={entry.scale}, expected band={s.band_name} scale={s.scale}"
                )
