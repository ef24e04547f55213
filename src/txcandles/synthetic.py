"""Synthetic placeholder series for runs that found no usable prices."""

from __future__ import annotations

import random

from txcandles.config import AggregatorConfig
from txcandles.grid import BucketGrid
from txcandles.models import Candle, isoformat


def synthesize(
    grid: BucketGrid,
    config: AggregatorConfig,
    rng: random.Random | None = None,
) -> list[Candle]:
    """Return one random candle per grid bucket, oldest first.

    Prices wander around ``config.base_price`` by up to half of
    ``config.volatility`` either side; high and low stretch a further
    ``volatility`` and always enclose open and close. Pass a seeded *rng*
    for reproducible output.
    """
    rng = rng or random.Random()
    vol = config.volatility
    span = config.max_volume - config.min_volume

    candles: list[Candle] = []
    for start in sorted(grid.starts()):
        open_ = config.base_price * (1 + (rng.random() - 0.5) * vol)
        high = open_ * (1 + rng.random() * vol)
        low = open_ * (1 - rng.random() * vol)
        close = open_ * (1 + (rng.random() - 0.5) * vol)
        candles.append(
            Candle(
                time=isoformat(start),
                open=open_,
                high=max(high, open_, close),
                low=min(low, open_, close),
                close=close,
                value=config.min_volume + rng.random() * span,
            )
        )
    return candles
