"""Post-processing applied to candles built from real transactions."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from txcandles.config import AggregatorConfig
from txcandles.grid import Bucket
from txcandles.models import Candle

logger = logging.getLogger(__name__)


def widen(candle: Candle, ratio: float) -> Candle:
    """Push a lone candle's high/low at least *ratio* away from its open."""
    return Candle(
        time=candle.time,
        open=candle.open,
        high=max(candle.high, candle.open * (1 + ratio)),
        low=min(candle.low, candle.open * (1 - ratio)),
        close=candle.close,
        value=candle.value,
    )


def clamp(candle: Candle, previous_close: float, max_change: float) -> Candle:
    """Limit the close-to-close move from *previous_close* to *max_change*.

    A previous close of zero leaves the candle untouched since the relative
    change is undefined.
    """
    if previous_close == 0:
        return candle
    change = candle.close - previous_close
    if abs(change / previous_close) <= max_change:
        return candle

    direction = 1 if change > 0 else -1
    close = previous_close * (1 + direction * max_change)
    logger.debug(
        "Clamping %s close %s -> %s (previous close %s)",
        candle.time, candle.close, close, previous_close,
    )
    return Candle(
        time=candle.time,
        open=candle.open,
        high=max(candle.high, close),
        low=min(candle.low, close),
        close=close,
        value=candle.value,
    )


def finalize(buckets: Sequence[Bucket], config: AggregatorConfig) -> list[Candle]:
    """Turn touched buckets into the final, oldest-first candle list.

    A single candle is widened so the chart has a visible range. With more
    than one candle each close is clamped against the raw close of its
    predecessor; the first candle is never adjusted.
    """
    ordered = sorted(buckets, key=lambda bucket: bucket.start)
    candles = [bucket.to_candle() for bucket in ordered]

    if len(candles) == 1:
        return [widen(candles[0], config.widen_ratio)]

    result = candles[:1]
    for previous, candle in zip(candles, candles[1:]):
        result.append(clamp(candle, previous.close, config.max_step_change))
    return result
