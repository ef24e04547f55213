import datetime
import random
from collections.abc import Callable

import pytest

from txcandles.models import TokenBalance, TransactionRecord

# 12:40 UTC so hourly and half-hourly buckets both differ from the raw instant
NOW = datetime.datetime(2024, 5, 1, 12, 40, 15, tzinfo=datetime.timezone.utc)

PRE_LAMPORTS = 5_000_000_000


def make_swap(
    price: float,
    when: datetime.datetime | None,
    tokens: float = 1.0,
    fee: int | None = 5000,
    err=None,
) -> TransactionRecord:
    """A one-pair transaction whose balance-delta price is *price* SOL/token."""
    post_lamports = PRE_LAMPORTS + round(price * tokens * 1_000_000_000)
    return TransactionRecord(
        block_time=int(when.timestamp()) if when is not None else None,
        fee=fee,
        err=err,
        pre_token_balances=(TokenBalance(account_index=0, ui_amount=100.0),),
        post_token_balances=(TokenBalance(account_index=0, ui_amount=100.0 + tokens),),
        pre_balances=(PRE_LAMPORTS,),
        post_balances=(post_lamports,),
    )


def make_fee(fee: int | None, when: datetime.datetime | None) -> TransactionRecord:
    return TransactionRecord(
        block_time=int(when.timestamp()) if when is not None else None,
        fee=fee,
    )


@pytest.fixture
def now() -> datetime.datetime:
    return NOW


@pytest.fixture
def swap() -> Callable[..., TransactionRecord]:
    return make_swap


@pytest.fixture
def fee_tx() -> Callable[..., TransactionRecord]:
    return make_fee


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


def hours_ago(hours: float, minutes: float = 0) -> datetime.datetime:
    """An instant inside the bucket *hours* back from NOW's hourly bucket."""
    return NOW - datetime.timedelta(hours=hours, minutes=minutes)
