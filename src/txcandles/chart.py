"""End-to-end helper: fetch a token's transactions and aggregate them."""

from __future__ import annotations

import datetime
import random

from txcandles.config import AggregatorConfig
from txcandles.errors import NoDataError
from txcandles.models import CandleSeries, Interval
from txcandles.policies.base import AggregationPolicy
from txcandles.registry import aggregate
from txcandles.sources.base import TransactionSource


async def load_chart(
    address: str,
    *,
    steps: int = 6,
    interval: Interval = Interval.HOUR,
    policy: AggregationPolicy | str | None = None,
    source: TransactionSource | None = None,
    config: AggregatorConfig | None = None,
    now: datetime.datetime | None = None,
    rng: random.Random | None = None,
) -> CandleSeries:
    """Fetch recent transactions for *address* and build its candle series.

    Uses :class:`~txcandles.sources.solana.SolanaRpcSource` configured from
    the environment unless another *source* is given.

    Raises:
        NoDataError: No transactions were found, or the fee-only policy
                     produced no candles.
    """
    if source is None:
        from txcandles.config import SourceConfig  # noqa: PLC0415
        from txcandles.sources.solana import SolanaRpcSource  # noqa: PLC0415
        source = SolanaRpcSource(SourceConfig.from_env())

    records = await source.fetch(address)
    if not records:
        raise NoDataError("No transaction history found")

    series = aggregate(
        records,
        steps,
        interval=interval,
        policy=policy,
        now=now,
        config=config,
        rng=rng,
    )
    if not series:
        raise NoDataError("No valid transaction data found")
    return series
