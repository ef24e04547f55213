from txcandles.sources.base import TransactionSource
from txcandles.sources.solana import SolanaRpcSource, resolve

__all__ = ["SolanaRpcSource", "TransactionSource", "resolve"]
