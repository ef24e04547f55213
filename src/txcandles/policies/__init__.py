from txcandles.policies.balance_delta import BalanceDeltaPolicy
from txcandles.policies.base import AggregationPolicy, PriceSample
from txcandles.policies.fee_only import FeeOnlyPolicy

__all__ = ["AggregationPolicy", "BalanceDeltaPolicy", "FeeOnlyPolicy", "PriceSample"]
