"""Region-of-interest loading."""
from __future__ import annotations

import json
from pathlib import Path

import ee
import geopandas as gpd

from . import config


def load_region(source: str):
    """
    Resolve a region of interest.

    A path to an existing vector file (GeoJSON, GPKG, shapefile) is read
    with geopandas, reprojected to WGS84 and dissolved into a single
    ee.Geometry. Anything else is treated as an Earth Engine
    FeatureCollection asset id.
    """
    path = Path(source)
    if not path.exists():
        return ee.FeatureCollection(source)

    gdf = gpd.read_file(path)
    if gdf.empty:
        raise config.ConfigurationError(f"Region file has no features: {path}")
    if gdf.crs is not None:
        gdf = gdf.to_crs(config.CRS_WGS84)

    dissolved = gdf.dissolve()
    geom_json = json.loads(gpd.GeoSeries(dissolved.geometry.values).to_json())
    return ee.Geometry(geom_json["features"][0]["geometry"])


def region_geometry(region):
    """Geometry for reduceRegion / download; collections are flattened."""
    if isinstance(region, ee.Geometry):
        return region
    return region.geometry()
