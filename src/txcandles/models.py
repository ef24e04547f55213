"""Data models for transaction records and OHLCV candles."""

from __future__ import annotations

import datetime
import enum
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

_UTC = datetime.timezone.utc


class Interval(enum.Enum):
    """Bucket width of a candle series."""

    HALF_HOUR = 1_800
    HOUR = 3_600

    @property
    def seconds(self) -> int:
        return self.value

    @property
    def step(self) -> datetime.timedelta:
        return datetime.timedelta(seconds=self.value)

    @property
    def label(self) -> str:
        return "1h" if self is Interval.HOUR else "30m"

    @classmethod
    def parse(cls, text: str) -> Interval:
        """Map an interval string (``1h`` or ``30m``) to an :class:`Interval`."""
        for member in cls:
            if member.label == text.strip().lower():
                return member
        raise ValueError(f"unsupported interval {text!r}, expected '1h' or '30m'")

    def truncate(self, moment: datetime.datetime) -> datetime.datetime:
        """Return the start of the bucket containing *moment*.

        Hourly buckets zero minutes and seconds; half-hourly buckets floor
        minutes to 0 or 30. Naive datetimes are taken to be UTC.
        """
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=_UTC)
        moment = moment.astimezone(_UTC)
        minute = 0 if self is Interval.HOUR else moment.minute - moment.minute % 30
        return moment.replace(minute=minute, second=0, microsecond=0)


class Provenance(enum.Enum):
    """Where the prices of a :class:`CandleSeries` came from."""

    REAL = "real"
    SYNTHETIC = "synthetic"


def isoformat(moment: datetime.datetime) -> str:
    """Format *moment* as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    moment = moment.astimezone(_UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_isoformat(text: str) -> datetime.datetime:
    return datetime.datetime.fromisoformat(text.replace("Z", "+00:00"))


def _to_int(value: Any) -> int | None:
    """Return *value* as an int, or ``None`` when it is missing or malformed."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(slots=True, frozen=True)
class TokenBalance:
    """A token balance snapshot for one account of a transaction."""

    account_index: int
    ui_amount: float | None = None

    @classmethod
    def from_rpc(cls, data: Any) -> TokenBalance | None:
        """Parse one ``preTokenBalances``/``postTokenBalances`` row.

        Returns ``None`` for a null or malformed row so the row keeps its
        position but never pairs.
        """
        if not isinstance(data, Mapping):
            return None
        account_index = _to_int(data.get("accountIndex", 0))
        if account_index is None:
            return None
        amount = data.get("uiTokenAmount")
        return cls(
            account_index=account_index,
            ui_amount=_to_float(amount.get("uiAmount")) if isinstance(amount, Mapping) else None,
        )


@dataclass(slots=True, frozen=True)
class TransactionRecord:
    """The parts of a ledger transaction the aggregator looks at.

    Attributes:
        block_time:          Unix timestamp (seconds) or ``None`` if unknown.
        fee:                 Network fee in lamports.
        err:                 Non-``None`` when the transaction failed.
        pre_token_balances:  Token balances before execution (``None`` for a null row).
        post_token_balances: Token balances after execution (``None`` for a null row).
        pre_balances:        Native balances (lamports) before, by account index.
        post_balances:       Native balances (lamports) after, by account index.
        signature:           Transaction signature, when known.
    """

    block_time: int | None = None
    fee: int | None = None
    err: Any = None
    pre_token_balances: tuple[TokenBalance | None, ...] | None = None
    post_token_balances: tuple[TokenBalance | None, ...] | None = None
    pre_balances: tuple[int, ...] | None = None
    post_balances: tuple[int, ...] | None = None
    signature: str | None = None

    @classmethod
    def from_rpc(cls, data: Mapping[str, Any]) -> TransactionRecord:
        """Build a record from a ``getTransaction`` JSON-RPC result.

        Parsing never raises for malformed fields. Missing ``meta`` leaves
        every balance field ``None``; a bad ``blockTime`` or ``fee`` becomes
        ``None``; a null token balance row stays ``None`` in place; a null or
        malformed native balance counts as 0 lamports.
        """
        meta = data.get("meta")
        block_time = _to_int(data.get("blockTime"))
        transaction = data.get("transaction")
        signatures = transaction.get("signatures") if isinstance(transaction, Mapping) else None
        if isinstance(signatures, (list, tuple)) and signatures:
            signature = signatures[0]
        else:
            signature = data.get("signature")
        if not isinstance(meta, Mapping):
            return cls(block_time=block_time, signature=signature)

        def balances(key: str) -> tuple[TokenBalance | None, ...] | None:
            rows = meta.get(key)
            if not isinstance(rows, (list, tuple)):
                return None
            return tuple(TokenBalance.from_rpc(row) for row in rows)

        def lamports(key: str) -> tuple[int, ...] | None:
            rows = meta.get(key)
            if not isinstance(rows, (list, tuple)):
                return None
            return tuple(_to_int(v) or 0 for v in rows)

        return cls(
            block_time=block_time,
            fee=_to_int(meta.get("fee")),
            err=meta.get("err"),
            pre_token_balances=balances("preTokenBalances"),
            post_token_balances=balances("postTokenBalances"),
            pre_balances=lamports("preBalances"),
            post_balances=lamports("postBalances"),
            signature=signature,
        )

    @property
    def failed(self) -> bool:
        return self.err is not None

    @property
    def has_token_balances(self) -> bool:
        return bool(self.pre_token_balances) and self.post_token_balances is not None

    @property
    def timestamp(self) -> datetime.datetime | None:
        if self.block_time is None:
            return None
        return datetime.datetime.fromtimestamp(self.block_time, tz=_UTC)


@dataclass(slots=True, frozen=True)
class Candle:
    """A single OHLCV bar.

    Attributes:
        time:  Bucket start as an ISO-8601 UTC string (``...T12:00:00.000Z``).
        open:  Price of the first trade placed in the bucket.
        high:  Highest price during the bar.
        low:   Lowest price during the bar.
        close: Price of the last trade placed in the bucket.
        value: Volume proxy accumulated over the bar.
    """

    time: str
    open: float
    high: float
    low: float
    close: float
    value: float = 0.0

    def __post_init__(self) -> None:
        if self.high < self.low:
            raise ValueError(f"high ({self.high}) must be >= low ({self.low})")
        for name in ("open", "close"):
            price = getattr(self, name)
            if not self.low <= price <= self.high:
                raise ValueError(
                    f"{name} ({price}) must lie within [{self.low}, {self.high}]"
                )

    @property
    def timestamp(self) -> datetime.datetime:
        return parse_isoformat(self.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "value": self.value,
        }


@dataclass(frozen=True)
class CandleSeries(Sequence[Candle]):
    """An ordered, oldest-first candle sequence tagged with its provenance."""

    candles: tuple[Candle, ...] = ()
    provenance: Provenance = Provenance.REAL
    interval: Interval = Interval.HOUR
    policy: str = ""

    def __len__(self) -> int:
        return len(self.candles)

    def __getitem__(self, index):  # type: ignore[override]
        return self.candles[index]

    def __iter__(self) -> Iterator[Candle]:
        return iter(self.candles)

    @property
    def is_synthetic(self) -> bool:
        return self.provenance is Provenance.SYNTHETIC

    def replace_candles(self, candles: Sequence[Candle]) -> CandleSeries:
        return CandleSeries(
            candles=tuple(candles),
            provenance=self.provenance,
            interval=self.interval,
            policy=self.policy,
        )

    def to_list(self) -> list[dict[str, Any]]:
        return [candle.to_dict() for candle in self.candles]
