"""txcandles: OHLCV candle series from raw Solana token transactions."""

from .chart import load_chart
from .config import AggregatorConfig, SourceConfig
from .models import Candle, CandleSeries, Interval, Provenance, TransactionRecord
from .registry import aggregate, get_policy

__all__ = [
    "AggregatorConfig",
    "Candle",
    "CandleSeries",
    "Interval",
    "Provenance",
    "SourceConfig",
    "TransactionRecord",
    "aggregate",
    "get_policy",
    "load_chart",
]
__version__ = "0.1.0"
