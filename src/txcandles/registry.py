"""Policy registry and the aggregation entry point.

Policy selection (when the caller does not name one):
- Any record carries token balances  → balance-delta (with synthetic fallback)
- Otherwise                          → fee-only (empty result allowed)
"""

from __future__ import annotations

import datetime
import logging
import random
from collections.abc import Iterable, Mapping
from typing import Any

from txcandles.config import AggregatorConfig
from txcandles.grid import BucketGrid
from txcandles.models import CandleSeries, Interval, Provenance, TransactionRecord
from txcandles.policies.base import AggregationPolicy
from txcandles.postprocess import finalize
from txcandles.synthetic import synthesize

logger = logging.getLogger(__name__)

# Lazy singletons — policies are stateless and shared between calls
_balance_delta: AggregationPolicy | None = None
_fee_only: AggregationPolicy | None = None


def _get_balance_delta() -> AggregationPolicy:
    global _balance_delta
    if _balance_delta is None:
        from txcandles.policies.balance_delta import BalanceDeltaPolicy  # noqa: PLC0415
        _balance_delta = BalanceDeltaPolicy()
    return _balance_delta


def _get_fee_only() -> AggregationPolicy:
    global _fee_only
    if _fee_only is None:
        from txcandles.policies.fee_only import FeeOnlyPolicy  # noqa: PLC0415
        _fee_only = FeeOnlyPolicy()
    return _fee_only


_POLICIES = {
    "balance-delta": _get_balance_delta,
    "fee-only": _get_fee_only,
}


def available() -> list[str]:
    return sorted(_POLICIES)


def get_policy(name: str) -> AggregationPolicy:
    """Return the policy registered under *name*.

    Raises:
        KeyError: *name* is not a registered policy.
    """
    try:
        factory = _POLICIES[name.strip().lower()]
    except KeyError:
        raise KeyError(
            f"unknown aggregation policy {name!r}; available: {', '.join(available())}"
        ) from None
    return factory()


def pick(records: Iterable[TransactionRecord]) -> AggregationPolicy:
    """Choose a policy from the metadata *records* carry."""
    balance_delta = _get_balance_delta()
    if any(balance_delta.supports(record) for record in records):
        return balance_delta
    return _get_fee_only()


def _coerce(
    records: Iterable[TransactionRecord | Mapping[str, Any] | None],
) -> list[TransactionRecord]:
    coerced: list[TransactionRecord] = []
    for record in records:
        if record is None:
            continue
        if isinstance(record, TransactionRecord):
            coerced.append(record)
        elif isinstance(record, Mapping):
            coerced.append(TransactionRecord.from_rpc(record))
    return coerced


def aggregate(
    records: Iterable[TransactionRecord | Mapping[str, Any] | None],
    steps: int = 12,
    *,
    interval: Interval = Interval.HOUR,
    policy: AggregationPolicy | str | None = None,
    now: datetime.datetime | None = None,
    config: AggregatorConfig | None = None,
    rng: random.Random | None = None,
) -> CandleSeries:
    """Aggregate transactions into an oldest-first candle series.

    Args:
        records:  Transactions in processing order. Raw ``getTransaction``
                  results are accepted and parsed; ``None`` entries are skipped.
        steps:    Number of buckets, counting back from the one holding *now*.
        interval: Bucket width — :attr:`Interval.HOUR` or :attr:`Interval.HALF_HOUR`.
        policy:   Policy instance or registered name; picked from the
                  records when omitted.
        now:      Invocation instant, defaults to the current UTC time.
        config:   Thresholds; defaults to :class:`AggregatorConfig`.
        rng:      Random source for the synthetic fallback.

    Returns:
        A :class:`~txcandles.models.CandleSeries`. When no record yields a
        price, policies with a fallback return a synthetic series (tagged
        :attr:`Provenance.SYNTHETIC`) and the others an empty one.
    """
    config = config or AggregatorConfig()
    now = now or datetime.datetime.now(datetime.timezone.utc)
    batch = _coerce(records)
    if policy is None:
        policy = pick(batch)
    elif isinstance(policy, str):
        policy = get_policy(policy)

    grid = BucketGrid(now, steps, interval)
    used = 0
    for record in batch:
        if record.block_time is None:
            continue
        offset = grid.offset_for(record.block_time)
        if offset is None:
            continue
        sample = policy.sample(record, config)
        if sample is None:
            continue
        grid[offset].add(sample)
        used += 1

    touched = grid.touched()
    if touched:
        candles = finalize(touched, config)
        logger.info(
            "Aggregated %d/%d transactions into %d %s candles (%s)",
            used, len(batch), len(candles), interval.label, policy.name,
        )
        return CandleSeries(
            candles=tuple(candles),
            provenance=Provenance.REAL,
            interval=interval,
            policy=policy.name,
        )

    if not policy.has_fallback:
        logger.info("No %s prices in %d transactions", policy.name, len(batch))
        return CandleSeries(interval=interval, policy=policy.name)

    logger.warning(
        "No usable prices in %d transactions; returning %d synthetic candles",
        len(batch), len(grid),
    )
    return CandleSeries(
        candles=tuple(synthesize(grid, config, rng)),
        provenance=Provenance.SYNTHETIC,
        interval=interval,
        policy=policy.name,
    )
