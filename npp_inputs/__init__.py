"""
NPP input harmonization pipeline.

Modules:
    config        – constants (collections, scale factors, defaults) and PipelineConfig
    gee_auth      – Earth Engine session setup
    geo_utils     – region-of-interest loading
    s01_schedule  – period anchors -> 16-day windows + native filter range
    s02_series    – per-source raster series (NDVI, LST, SOL, We)
    s03_harmonize – shared categorical mask applied to all series
    s04_npp       – productivity model invocation and pixel-count diagnostics
    pipeline      – orchestrator / CLI
"""
