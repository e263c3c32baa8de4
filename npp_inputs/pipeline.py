"""
NPP Input Pipeline
==================
Build the four aligned, masked input series, run the productivity model
over the whole schedule and over one period, and write the per-source
pixel-count diagnostics.

Usage:
    python -m npp_inputs.pipeline --model my_npp.models:CASAModel
    python -m npp_inputs.pipeline --model my_npp.models:CASAModel \\
        --anchors 2018-01-01 2018-01-17 2018-02-02 2018-02-18 --scale 1000
    python -m npp_inputs.pipeline --model my_npp.models:CASAModel --dry-run

Output: data/diagnostics/pixel_counts_{date}.csv
"""
from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path

import ee

from . import config
from .config import ConfigurationError, PipelineConfig
from .gee_auth import authenticate_and_initialize
from .geo_utils import load_region, region_geometry
from .s01_schedule import Schedule, build_schedule, schedule_to_frame
from .s02_series import SOURCE_ORDER, RasterSeries, SeriesBuilder
from .s03_harmonize import SharedMask, apply_mask, check_schema, load_mask
from .s04_npp import (
    NPPInvoker,
    PeriodResult,
    ProductivityModel,
    bundle_for_period,
    check_aligned,
    download_url,
    load_model,
    materialize_pixel_counts,
)


@dataclass(frozen=True)
class PipelineResult:
    schedule: Schedule
    series: list[RasterSeries]
    npp_collection: ee.ImageCollection
    period: PeriodResult


def build_inputs(cfg: PipelineConfig, region, mask: SharedMask) -> tuple[Schedule, list[RasterSeries]]:
    """Schedule → four series on the shared grid → shared mask."""
    schedule = build_schedule(cfg.anchors, cfg.window_days)
    builder = SeriesBuilder(region, cfg.scale_m_px, cfg.crs)
    series = builder.build_all(schedule, SOURCE_ORDER)
    check_schema(series)
    return schedule, apply_mask(series, mask)


def run(
    cfg: PipelineConfig,
    model: ProductivityModel,
    region,
    mask: SharedMask,
    period_index: int = 0,
) -> PipelineResult:
    """
    Description phase: nothing here is sent to the server.

    Series alignment needs the NDVI composite count from the server, so it
    is not checked here; call check_aligned(result.series) before
    materializing anything.
    """
    schedule, series = build_inputs(cfg, region, mask)
    if not 0 <= period_index < len(schedule):
        raise ConfigurationError(
            f"period_index {period_index} outside schedule of {len(schedule)} periods"
        )
    invoker = NPPInvoker(model, region_geometry(region), cfg.scale_m_px)
    npp_collection = invoker.compute_for_schedule(series, cfg.topt, cfg.luemax, validate=False)
    bundle = bundle_for_period(series, period_index, cfg.topt, cfg.luemax)
    return PipelineResult(
        schedule=schedule,
        series=series,
        npp_collection=npp_collection,
        period=invoker.compute_for_period(bundle),
    )


def print_inputs(cfg: PipelineConfig, schedule: Schedule) -> None:
    print("\n============== INPUTS ==============")
    print(f"  Region of interest : {cfg.roi}")
    print(f"  Scale (m/px)       : {cfg.scale_m_px}")
    print(f"  Shared mask        : {cfg.mask_asset}")
    print(f"  Optimal temperature: {cfg.topt}")
    print(f"  Maximum LUE        : {cfg.luemax}")
    for policy in SOURCE_ORDER:
        print(f"  {policy.band_name:5s}: {policy.collection_id} ({policy.window_mode}, {policy.reduction})")
    native = schedule.native_filter_range
    print(f"  NDVI filter range  : {native.start_iso} to {native.end_iso}")
    print(schedule_to_frame(schedule).to_string(index=False))


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Harmonize NDVI/LST/SOL/We inputs and compute NPP")
    parser.add_argument("--model", required=True,
                        help="Productivity model as 'module:attr'")
    parser.add_argument("--anchors", nargs="+", default=config.PERIOD_ANCHORS,
                        help="Period anchor dates (YYYY-MM-DD)")
    parser.add_argument("--scale", type=float, default=config.SCALE_M_PX,
                        help="Shared pixel scale in meters")
    parser.add_argument("--topt", type=float, default=config.TOPT)
    parser.add_argument("--luemax", type=float, default=config.LUEMAX)
    parser.add_argument("--roi", default=config.ROI_ASSET,
                        help="FeatureCollection asset id or local vector file")
    parser.add_argument("--mask", default=config.MASK_ASSET,
                        help="Shared categorical mask asset id")
    parser.add_argument("--project", default=None, help="Earth Engine cloud project")
    parser.add_argument("--period-index", type=int, default=0,
                        help="Period used for the single-period NPP and pixel counts")
    parser.add_argument("--out-dir", type=Path, default=config.DIAGNOSTICS_DIR)
    parser.add_argument("--dry-run", action="store_true",
                        help="Build descriptions only; do not materialize anything")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main execution: build inputs, compute NPP, write diagnostics."""
    args = parse_args(argv)

    print("=" * 60)
    print("NPP Input Harmonization")
    print("=" * 60)

    try:
        cfg = PipelineConfig(
            anchors=tuple(args.anchors),
            scale_m_px=args.scale,
            roi=args.roi,
            mask_asset=args.mask,
            topt=args.topt,
            luemax=args.luemax,
        )
        model = load_model(args.model)
        print_inputs(cfg, build_schedule(cfg.anchors, cfg.window_days))
    except ConfigurationError as e:
        print(f"[FAIL] {e}")
        return 2

    authenticate_and_initialize(args.project)

    try:
        region = load_region(cfg.roi)
        mask = load_mask(cfg.mask_asset)
        result = run(cfg, model, region, mask, args.period_index)
    except ConfigurationError as e:
        print(f"[FAIL] {e}")
        return 2

    if args.dry_run:
        print("\n✓ Descriptions built (dry run, nothing materialized)")
        return 0

    try:
        n_periods = check_aligned(result.series)
    except ConfigurationError as e:
        print(f"[FAIL] {e}")
        return 2
    print(f"  ✓ {n_periods} aligned periods")

    period = result.period
    label = period.date or f"period{args.period_index}"
    print(f"\n── Pixel counts ({label}) ──")
    counts = materialize_pixel_counts(period.pixel_counts, period.date)
    print(counts.to_string(index=False))

    args.out_dir.mkdir(parents=True, exist_ok=True)
    out_path = args.out_dir / f"pixel_counts_{label}.csv"
    counts.to_csv(out_path, index=False)
    print(f"  ✓ Saved: {out_path.name}")

    n_images = result.npp_collection.size().getInfo()
    print(f"\n  ✓ NPP collection: {n_images} images")
    url = download_url(period.npp, "NPP", region_geometry(region))
    print(f"  ✓ Single-period NPP ({label}): {url}")

    print("\n" + "=" * 60)
    print("NPP pipeline complete!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
