"""Abstract base class for all transaction sources."""

from __future__ import annotations

from abc import ABC, abstractmethod

from txcandles.models import TransactionRecord


class TransactionSource(ABC):
    """Base class every transaction source must implement.

    A source supplies the aggregator with recent transactions touching a
    token mint. Sources do no aggregation of their own.
    """

    #: Human-readable source name used in logs and error messages.
    name: str = ""

    @abstractmethod
    def supports(self, address: str) -> bool:
        """Return True if this source can attempt to fetch *address*.

        Implementations should do a quick pattern check and return False
        fast for addresses they definitely cannot handle.
        """

    @abstractmethod
    async def fetch(
        self,
        address: str,
        limit: int | None = None,
    ) -> list[TransactionRecord] | None:
        """Fetch recent transactions for the token *address*.

        Args:
            address: Mint address or a known token symbol (e.g. ``USDC``).
            limit:   Maximum number of signatures to look up; the source's
                     configured default when omitted.

        Returns:
            Transaction records, newest first as the ledger reports them,
            or ``None`` if the token has no transaction history.
        """
