"""Solana transaction source — fetches token history over JSON-RPC."""

from __future__ import annotations

import asyncio
import itertools
import logging
import re
from typing import Any

import aiohttp

from txcandles.config import KNOWN_TOKENS, SourceConfig
from txcandles.errors import InvalidAddressError, NoDataError, SourceError
from txcandles.models import TransactionRecord
from txcandles.sources.base import TransactionSource

logger = logging.getLogger(__name__)

# Base58 public keys are 32 bytes, which encode to 32–44 characters
_ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")

_ids = itertools.count(1)


def resolve(address: str) -> str:
    """Return the mint address for *address*.

    Known symbols (``USDC``, ``USDT``, ``SRM``) map to their mints; anything
    else must already be a base58 address.

    Raises:
        InvalidAddressError: *address* is neither a known symbol nor base58.
    """
    stripped = address.strip()
    known = KNOWN_TOKENS.get(stripped.upper())
    if known:
        return known
    if not _ADDRESS_RE.match(stripped):
        raise InvalidAddressError(f"{address!r} is not a valid token mint address")
    return stripped


class SolanaRpcSource(TransactionSource):
    """Fetches token transactions from a Solana JSON-RPC endpoint.

    No API key required for the public clusters. The token must have at
    least one holder account; its most recent signatures are looked up and
    every transaction is then fetched over one session, at most
    ``config.max_concurrency`` requests at a time.

    Args:
        config:      Endpoint and limits; defaults to :class:`SourceConfig`.
        skip_failed: Drop transactions whose ``meta.err`` is set.
    """

    name = "solana-rpc"

    def __init__(
        self,
        config: SourceConfig | None = None,
        *,
        skip_failed: bool = False,
    ) -> None:
        self.config = config or SourceConfig()
        self.skip_failed = skip_failed

    def supports(self, address: str) -> bool:
        stripped = address.strip()
        return stripped.upper() in KNOWN_TOKENS or bool(_ADDRESS_RE.match(stripped))

    async def fetch(
        self,
        address: str,
        limit: int | None = None,
    ) -> list[TransactionRecord] | None:
        mint = resolve(address)
        limit = limit or self.config.signature_limit
        commitment = {"commitment": self.config.commitment}

        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            accounts = await self._call(session, "getTokenLargestAccounts", [mint, commitment])
            if not isinstance(accounts, dict) or not accounts.get("value"):
                raise NoDataError("No token accounts found")

            rows = await self._call(
                session, "getSignaturesForAddress", [mint, {"limit": limit, **commitment}]
            )
            signatures = [
                row["signature"]
                for row in rows or ()
                if isinstance(row, dict) and row.get("signature")
            ]
            if not signatures:
                return None

            # Public clusters answer large bursts with HTTP 429
            semaphore = asyncio.Semaphore(self.config.max_concurrency)
            options = {"maxSupportedTransactionVersion": 0, "encoding": "json", **commitment}

            async def get_transaction(signature: str) -> Any:
                async with semaphore:
                    return await self._call(session, "getTransaction", [signature, options])

            results = await asyncio.gather(*(get_transaction(sig) for sig in signatures))

        records: list[TransactionRecord] = []
        for signature, result in zip(signatures, results):
            if not isinstance(result, dict):
                continue
            record = TransactionRecord.from_rpc({"signature": signature, **result})
            if self.skip_failed and record.failed:
                continue
            records.append(record)

        logger.info(
            "Fetched %d of %d transactions for %s from %s",
            len(records), len(signatures), mint, self.config.rpc_url,
        )
        return records

    async def _call(
        self,
        session: aiohttp.ClientSession,
        method: str,
        params: list[Any],
    ) -> Any:
        """Send one JSON-RPC request and return its ``result``.

        Raises:
            SourceError: The request failed or timed out, the endpoint
                         answered with a non-200 status or a non-object body,
                         or the response carried a JSON-RPC ``error``.
        """
        payload = {"jsonrpc": "2.0", "id": next(_ids), "method": method, "params": params}
        try:
            async with session.post(self.config.rpc_url, json=payload) as resp:
                if resp.status != 200:
                    raise SourceError(
                        f"{method} failed with HTTP {resp.status}", status=resp.status
                    )
                data = await resp.json(content_type=None)
        except asyncio.TimeoutError as exc:
            raise SourceError(
                f"{method} timed out after {self.config.timeout}s"
            ) from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise SourceError(f"{method} request failed: {exc}") from exc

        if not isinstance(data, dict):
            raise SourceError(
                f"{method} returned a non-object response: {type(data).__name__}",
                status=200,
            )
        error = data.get("error")
        if error:
            message = error.get("message", error) if isinstance(error, dict) else error
            raise SourceError(
                f"{method} returned error: {message}",
                status=200,
                code=error.get("code") if isinstance(error, dict) else None,
            )
        return data.get("result")
