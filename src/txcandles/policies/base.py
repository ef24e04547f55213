"""Abstract base class for all price-derivation policies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from txcandles.config import AggregatorConfig
from txcandles.models import TransactionRecord


@dataclass(slots=True, frozen=True)
class PriceSample:
    """The price one transaction contributes to its bucket.

    Attributes:
        price:  Price placed into open/high/low/close.
        volume: Amount added to the bucket's ``value``.
    """

    price: float
    volume: float


class AggregationPolicy(ABC):
    """Base class every aggregation policy must implement.

    A policy decides how a single transaction is turned into a price, and
    whether the aggregator may fall back to a synthetic series when no
    transaction yields one.
    """

    #: Name used in logs, registry lookups and on the produced series.
    name: str = ""

    #: When True an all-empty run produces a synthetic placeholder series.
    has_fallback: bool = False

    @abstractmethod
    def supports(self, record: TransactionRecord) -> bool:
        """Return True if *record* carries the fields this policy reads.

        Used for automatic policy selection; :meth:`sample` must still cope
        with records for which this returns False.
        """

    @abstractmethod
    def sample(
        self,
        record: TransactionRecord,
        config: AggregatorConfig,
    ) -> PriceSample | None:
        """Derive the price contributed by *record*.

        Returns:
            A :class:`PriceSample`, or ``None`` when the record yields no
            usable price. Implementations never raise for incomplete records.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
