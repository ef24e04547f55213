"""Bucket grid — one accumulator per interval of the requested window.

Buckets are keyed by their step offset from the most recent bucket
(offset 0 contains *now*, offset ``steps - 1`` is the oldest), so record
placement is integer arithmetic rather than a timestamp-string lookup.
"""

from __future__ import annotations

import datetime
import math
from collections.abc import Iterator
from dataclasses import dataclass

from txcandles.models import Candle, Interval, isoformat
from txcandles.policies.base import PriceSample


@dataclass(slots=True)
class Bucket:
    """Mutable OHLCV accumulator for one interval."""

    start: datetime.datetime
    touched: bool = False
    open: float = 0.0
    high: float = 0.0
    low: float = math.inf
    close: float = 0.0
    value: float = 0.0

    def add(self, sample: PriceSample) -> None:
        """Place one transaction price into the bucket.

        The first sample sets ``open``; every sample overwrites ``close``.
        """
        price = sample.price
        if not self.touched:
            self.open = price
            self.high = price
            self.touched = True
        self.high = max(self.high, price)
        self.low = min(self.low, price)
        self.close = price
        self.value += sample.volume

    def to_candle(self) -> Candle:
        low = self.open if math.isinf(self.low) else self.low
        return Candle(
            time=isoformat(self.start),
            open=self.open,
            high=self.high,
            low=low,
            close=self.close,
            value=self.value,
        )


class BucketGrid:
    """All buckets covering ``steps`` intervals back from *now*.

    Args:
        now:      Invocation instant; naive values are taken to be UTC.
        steps:    Number of buckets in the window (must be >= 1).
        interval: Bucket width.
    """

    def __init__(
        self,
        now: datetime.datetime,
        steps: int,
        interval: Interval = Interval.HOUR,
    ) -> None:
        if steps < 1:
            raise ValueError(f"steps must be >= 1, got {steps}")
        self.interval = interval
        self.steps = steps
        self.anchor = interval.truncate(now)
        self._buckets: dict[int, Bucket] = {
            offset: Bucket(start=self.anchor - offset * interval.step)
            for offset in range(steps)
        }

    def __len__(self) -> int:
        return len(self._buckets)

    def __getitem__(self, offset: int) -> Bucket:
        return self._buckets[offset]

    def __iter__(self) -> Iterator[Bucket]:
        return iter(self._buckets.values())

    def starts(self) -> list[datetime.datetime]:
        """Bucket start instants, most recent first."""
        return [bucket.start for bucket in self._buckets.values()]

    def offset_for(self, block_time: int) -> int | None:
        """Return the offset of the bucket holding *block_time*, if any.

        Records newer than the current bucket or older than the window
        map to ``None``.
        """
        try:
            moment = datetime.datetime.fromtimestamp(block_time, tz=datetime.timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
        start = self.interval.truncate(moment)
        offset, remainder = divmod(
            int((self.anchor - start).total_seconds()), self.interval.seconds
        )
        if remainder or offset not in self._buckets:
            return None
        return offset

    def touched(self) -> list[Bucket]:
        """Buckets that received at least one sample, oldest first."""
        return sorted(
            (bucket for bucket in self._buckets.values() if bucket.touched),
            key=lambda bucket: bucket.start,
        )
