"""Exceptions raised by txcandles.

The aggregator itself never raises for malformed transactions; these
errors come from configuration and from the transaction sources.
"""

from __future__ import annotations


class TxCandlesError(Exception):
    """Base class for every txcandles error."""


class ConfigError(TxCandlesError, ValueError):
    """A configuration value is missing or malformed."""


class InvalidAddressError(TxCandlesError, ValueError):
    """A token mint address is not valid base58 of the expected length."""


class SourceError(TxCandlesError):
    """A transaction source failed to answer.

    Attributes:
        status: HTTP status code, when the endpoint answered at all.
        code:   JSON-RPC error code, when the endpoint returned an error object.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: int | None = None,
    ) -> None:
        self.message = message
        self.status = status
        self.code = code
        super().__init__(message)


class NoDataError(TxCandlesError, LookupError):
    """The ledger returned nothing a chart can be built from."""
