"""
Period Schedule
===============
Turn the configured period anchors into the windows used by the
accumulated sources (LST, SOL, We) and the single date range used to
filter the natively composited NDVI collection.

Each anchor starts one window of WINDOW_DAYS days. The NDVI range is
[first anchor, last anchor + 1 day): MOD13Q1 already composites at 16
days, so it is filtered once rather than windowed.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable

import pandas as pd

from . import config
from .config import ConfigurationError


@dataclass(frozen=True)
class Period:
    """Half-open date range [start, end), matching ee filterDate."""
    start: date
    end: date

    @property
    def start_iso(self) -> str:
        return self.start.isoformat()

    @property
    def end_iso(self) -> str:
        return self.end.isoformat()

    @property
    def days(self) -> int:
        return (self.end - self.start).days


@dataclass(frozen=True)
class Schedule:
    anchors: tuple[date, ...]
    periods: tuple[Period, ...]
    native_filter_range: Period
    window_days: int

    def __len__(self) -> int:
        return len(self.periods)


def parse_anchor(value) -> date:
    """Accept a date, datetime or 'YYYY-MM-DD' string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as e:
            raise ConfigurationError(f"Invalid anchor date {value!r}: {e}") from e
    raise ConfigurationError(f"Unsupported anchor type {type(value).__name__}: {value!r}")


def build_schedule(
    anchors: Iterable,
    window_days: int = config.WINDOW_DAYS,
) -> Schedule:
    """
    Build the period schedule from an ordered list of anchors.

    Args:
        anchors: at least 2 strictly increasing dates
        window_days: length of every accumulated-source window

    Returns:
        Schedule with one Period per anchor plus the native filter range

    Raises:
        ConfigurationError: fewer than 2 anchors, or not strictly increasing
    """
    parsed = tuple(parse_anchor(a) for a in anchors)
    if len(parsed) < 2:
        raise ConfigurationError(
            f"At least 2 period anchors are required, got {len(parsed)}"
        )
    if window_days <= 0:
        raise ConfigurationError(f"window_days must be positive, got {window_days}")

    for prev, curr in zip(parsed, parsed[1:]):
        if curr <= prev:
            raise ConfigurationError(
                f"Period anchors must be strictly increasing: {prev} -> {curr}"
            )

    window = timedelta(days=window_days)
    periods = tuple(Period(a, a + window) for a in parsed)
    native = Period(
        parsed[0],
        parsed[-1] + timedelta(days=config.NATIVE_END_PAD_DAYS),
    )
    return Schedule(
        anchors=parsed,
        periods=periods,
        native_filter_range=native,
        window_days=window_days,
    )


def schedule_to_frame(schedule: Schedule) -> pd.DataFrame:
    """One row per window: period index, start, end (exclusive), days."""
    return pd.DataFrame(
        [
            {
                "period": i,
                "start": p.start_iso,
                "end": p.end_iso,
                "days": p.days,
            }
            for i, p in enumerate(schedule.periods)
        ]
    )
