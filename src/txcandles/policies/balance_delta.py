"""Balance-delta policy: price from token and SOL balance changes."""

from __future__ import annotations

import logging

from txcandles.config import AggregatorConfig
from txcandles.models import TransactionRecord
from txcandles.policies.base import AggregationPolicy, PriceSample

logger = logging.getLogger(__name__)


def _lamports(balances: tuple[int, ...] | None, index: int) -> int:
    if balances is None or not 0 <= index < len(balances):
        return 0
    return balances[index]


class BalanceDeltaPolicy(AggregationPolicy):
    """Prices a transaction from how much SOL moved per token moved.

    Each pre-token-balance entry is paired with the post entry at the same
    position. A pair whose token and SOL deltas are both positive yields
    ``sol_change / token_change``; prices outside the configured band are
    dropped. The transaction price is the mean of the surviving
    candidates and its volume is that mean times the candidate count.

    Runs that produce no price at all fall back to a synthetic series.
    """

    name = "balance-delta"
    has_fallback = True

    def supports(self, record: TransactionRecord) -> bool:
        return record.has_token_balances

    def candidates(
        self,
        record: TransactionRecord,
        config: AggregatorConfig,
    ) -> list[float]:
        """Return every in-band candidate price found in *record*."""
        pre_tokens = record.pre_token_balances or ()
        post_tokens = record.post_token_balances or ()

        prices: list[float] = []
        for position, pre in enumerate(pre_tokens):
            if position >= len(post_tokens):
                break
            post = post_tokens[position]
            if pre is None or post is None:
                continue

            token_change = abs((post.ui_amount or 0.0) - (pre.ui_amount or 0.0))
            pre_sol = _lamports(record.pre_balances, pre.account_index)
            post_sol = _lamports(record.post_balances, post.account_index)
            sol_change = abs(post_sol - pre_sol) / config.lamports_per_sol

            if token_change <= 0 or sol_change <= 0:
                continue
            price = sol_change / token_change
            if not config.in_band(price):
                logger.debug(
                    "Dropping out-of-band price %s (tx %s)", price, record.signature
                )
                continue

            logger.debug(
                "Candidate price %s: token_change=%s sol_change=%s (tx %s)",
                price, token_change, sol_change, record.signature,
            )
            prices.append(price)
        return prices

    def sample(
        self,
        record: TransactionRecord,
        config: AggregatorConfig,
    ) -> PriceSample | None:
        prices = self.candidates(record, config)
        if not prices:
            return None
        mean = sum(prices) / len(prices)
        return PriceSample(price=mean, volume=mean * len(prices))
