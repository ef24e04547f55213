"""Fee-only policy: the network fee stands in for price and volume."""

from __future__ import annotations

from txcandles.config import AggregatorConfig
from txcandles.models import TransactionRecord
from txcandles.policies.base import AggregationPolicy, PriceSample


class FeeOnlyPolicy(AggregationPolicy):
    """Uses the raw fee (lamports, unconverted) as the transaction price.

    Meant for transactions without token balance metadata. There is no
    synthetic fallback: a run with no fees produces an empty series.
    """

    name = "fee-only"
    has_fallback = False

    def supports(self, record: TransactionRecord) -> bool:
        return record.fee is not None

    def sample(
        self,
        record: TransactionRecord,
        config: AggregatorConfig,
    ) -> PriceSample | None:
        if record.fee is None or record.fee < 0:
            return None
        price = float(record.fee)
        return PriceSample(price=price, volume=price)
