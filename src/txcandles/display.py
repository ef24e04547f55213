"""Helpers for showing a candle series in a chart.

These do not change candle values: they pick the trailing slice a chart
shows for a zoom level and format timestamps for the time axis.
"""

from __future__ import annotations

import datetime

from txcandles.models import Candle, CandleSeries

MIN_ZOOM = 0.5
MAX_ZOOM = 3.0

# (minimum zoom, hours shown), highest zoom first
_ZOOM_HOURS: tuple[tuple[float, int], ...] = (
    (1.8, 6),
    (1.5, 12),
    (1.2, 18),
    (0.8, 24),
)
_WIDEST_HOURS = 48


def clamp_zoom(zoom: float) -> float:
    return min(max(zoom, MIN_ZOOM), MAX_ZOOM)


def hours_for_zoom(zoom: float) -> int:
    """Return how many trailing hours a chart shows at *zoom*."""
    for threshold, hours in _ZOOM_HOURS:
        if zoom >= threshold:
            return hours
    return _WIDEST_HOURS


def trailing(
    series: CandleSeries,
    hours: float,
    now: datetime.datetime | None = None,
) -> CandleSeries:
    """Keep only candles starting at or after ``now - hours``."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=datetime.timezone.utc)
    cutoff = now - datetime.timedelta(hours=hours)
    return series.replace_candles(
        [candle for candle in series if candle.timestamp >= cutoff]
    )


def axis_label(candle: Candle, tz: datetime.tzinfo | None = None) -> str:
    """Format a candle's start as ``HH:MM`` in *tz* (UTC by default)."""
    return candle.timestamp.astimezone(tz or datetime.timezone.utc).strftime("%H:%M")
