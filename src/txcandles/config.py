"""Tunable thresholds and endpoint settings.

Every numeric constant the aggregator applies lives in
:class:`AggregatorConfig` so callers can adjust the sanity band and the
step clamp without touching the algorithm. Values may also be supplied
through ``TXCANDLES_*`` environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from txcandles.errors import ConfigError

DEFAULT_RPCS: dict[str, str] = {
    "Mainnet Beta": "https://api.mainnet-beta.solana.com",
    "Devnet": "https://api.devnet.solana.com",
    "Testnet": "https://api.testnet.solana.com",
}

# Symbol shortcuts accepted in place of a mint address
KNOWN_TOKENS: dict[str, str] = {
    "USDC": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    "USDT": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
    "SRM": "SRMuApVNdxXokk5GT7XD5cUUgXMBCoAz2LHeuAoKWRt",
}

LAMPORTS_PER_SOL = 1_000_000_000


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(slots=True, frozen=True)
class AggregatorConfig:
    """Thresholds used while turning transactions into candles.

    Attributes:
        price_floor:       Candidate prices must be strictly above this.
        price_ceiling:     Candidate prices must be strictly below this.
        lamports_per_sol:  Divisor converting native balances to whole SOL.
        max_step_change:   Largest close-to-close move kept as is (0.5 = 50 %).
        widen_ratio:       How far a lone candle's high/low are pushed from open.
        base_price:        Centre of the synthetic placeholder series.
        volatility:        Relative spread of the synthetic series.
        min_volume:        Lower bound of synthetic volume.
        max_volume:        Upper bound (exclusive) of synthetic volume.
    """

    price_floor: float = 0.0
    price_ceiling: float = 1000.0
    lamports_per_sol: int = LAMPORTS_PER_SOL
    max_step_change: float = 0.5
    widen_ratio: float = 0.001
    base_price: float = 1.0
    volatility: float = 0.1
    min_volume: float = 1000.0
    max_volume: float = 2000.0

    def __post_init__(self) -> None:
        if self.price_ceiling <= self.price_floor:
            raise ConfigError(
                f"price_ceiling ({self.price_ceiling}) must exceed price_floor ({self.price_floor})"
            )
        if self.lamports_per_sol <= 0:
            raise ConfigError("lamports_per_sol must be positive")
        if self.max_step_change <= 0:
            raise ConfigError("max_step_change must be positive")
        if self.widen_ratio < 0:
            raise ConfigError("widen_ratio must not be negative")
        if self.max_volume < self.min_volume:
            raise ConfigError("max_volume must be >= min_volume")

    def in_band(self, price: float) -> bool:
        return self.price_floor < price < self.price_ceiling

    @classmethod
    def from_env(cls) -> AggregatorConfig:
        """Build a config from ``TXCANDLES_*`` environment variables."""
        return cls(
            price_floor=_env_float("TXCANDLES_PRICE_FLOOR", 0.0),
            price_ceiling=_env_float("TXCANDLES_PRICE_CEILING", 1000.0),
            lamports_per_sol=_env_int("TXCANDLES_LAMPORTS_PER_SOL", LAMPORTS_PER_SOL),
            max_step_change=_env_float("TXCANDLES_MAX_STEP_CHANGE", 0.5),
            widen_ratio=_env_float("TXCANDLES_WIDEN_RATIO", 0.001),
            base_price=_env_float("TXCANDLES_SYNTHETIC_BASE_PRICE", 1.0),
            volatility=_env_float("TXCANDLES_SYNTHETIC_VOLATILITY", 0.1),
            min_volume=_env_float("TXCANDLES_SYNTHETIC_MIN_VOLUME", 1000.0),
            max_volume=_env_float("TXCANDLES_SYNTHETIC_MAX_VOLUME", 2000.0),
        )


@dataclass(slots=True, frozen=True)
class SourceConfig:
    """Where and how transactions are fetched."""

    rpc_url: str = DEFAULT_RPCS["Mainnet Beta"]
    signature_limit: int = 100
    commitment: str = "confirmed"
    timeout: float = 30.0
    max_concurrency: int = 10

    def __post_init__(self) -> None:
        if not self.rpc_url.startswith(("http://", "https://")):
            raise ConfigError(f"rpc_url must be an http(s) URL, got {self.rpc_url!r}")
        if not 1 <= self.signature_limit <= 1000:
            raise ConfigError("signature_limit must be between 1 and 1000")
        if self.max_concurrency < 1:
            raise ConfigError("max_concurrency must be >= 1")

    @classmethod
    def from_env(cls) -> SourceConfig:
        """Build a config from ``TXCANDLES_RPC_URL`` and friends.

        ``TXCANDLES_RPC_URL`` also accepts a cluster name from
        :data:`DEFAULT_RPCS` such as ``Devnet``.
        """
        rpc_url = os.getenv("TXCANDLES_RPC_URL") or DEFAULT_RPCS["Mainnet Beta"]
        rpc_url = DEFAULT_RPCS.get(rpc_url, rpc_url)
        return cls(
            rpc_url=rpc_url,
            signature_limit=_env_int("TXCANDLES_SIGNATURE_LIMIT", 100),
            commitment=os.getenv("TXCANDLES_COMMITMENT", "confirmed"),
            timeout=_env_float("TXCANDLES_TIMEOUT", 30.0),
            max_concurrency=_env_int("TXCANDLES_MAX_CONCURRENCY", 10),
        )
