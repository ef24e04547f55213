import asyncio
import json

import aiohttp
import pytest
from conftest import NOW, hours_ago

from txcandles import Provenance, load_chart
from txcandles.config import KNOWN_TOKENS, SourceConfig
from txcandles.errors import InvalidAddressError, NoDataError, SourceError
from txcandles.sources import SolanaRpcSource, TransactionSource, resolve

MINT = "So11111111111111111111111111111111111111112"


def _tx(signature, hours, sol_delta, token_delta, err=None):
    return {
        "blockTime": int(hours_ago(hours).timestamp()),
        "meta": {
            "err": err,
            "fee": 5000,
            "preBalances": [10_000_000_000],
            "postBalances": [10_000_000_000 - sol_delta],
            "preTokenBalances": [{"accountIndex": 0, "uiTokenAmount": {"uiAmount": 1.0}}],
            "postTokenBalances": [
                {"accountIndex": 0, "uiTokenAmount": {"uiAmount": 1.0 + token_delta}}
            ],
        },
        "transaction": {"signatures": [signature]},
    }


class FakeRpc:
    """Stands in for ``SolanaRpcSource._call`` and records each request."""

    def __init__(self, accounts=True, transactions=None):
        self.accounts = accounts
        self.transactions = transactions or {}
        self.calls = []

    async def __call__(self, session, method, params):
        self.calls.append((method, params))
        if method == "getTokenLargestAccounts":
            return {"value": [{"address": "holder"}] if self.accounts else []}
        if method == "getSignaturesForAddress":
            return [{"signature": sig} for sig in self.transactions]
        if method == "getTransaction":
            return self.transactions[params[0]]
        raise AssertionError(f"unexpected method {method}")


class TestResolve:
    def test_known_symbol(self):
        assert resolve("usdc") == KNOWN_TOKENS["USDC"]

    def test_mint_passes_through(self):
        assert resolve(f"  {MINT} ") == MINT

    @pytest.mark.parametrize("address", ["", "not-an-address", "0OIl" * 10])
    def test_invalid(self, address):
        with pytest.raises(InvalidAddressError):
            resolve(address)

    def test_supports(self):
        source = SolanaRpcSource()
        assert source.supports("SRM")
        assert source.supports(MINT)
        assert not source.supports("BTCUSDT")


class TestSolanaRpcSource:
    def test_fetch(self, monkeypatch):
        rpc = FakeRpc(
            transactions={
                "a": _tx("a", 1, 500_000_000, 1.0),
                "b": None,
                "c": _tx("c", 2, 250_000_000, 1.0, err={"InstructionError": [0, 1]}),
            }
        )
        source = SolanaRpcSource(SourceConfig(signature_limit=50))
        monkeypatch.setattr(source, "_call", rpc)

        records = asyncio.run(source.fetch("USDC"))

        assert [record.signature for record in records] == ["a", "c"]
        methods = [method for method, _ in rpc.calls]
        assert methods[:2] == ["getTokenLargestAccounts", "getSignaturesForAddress"]
        assert methods.count("getTransaction") == 3
        assert rpc.calls[1][1] == [
            KNOWN_TOKENS["USDC"],
            {"limit": 50, "commitment": "confirmed"},
        ]
        assert rpc.calls[2][1][1]["maxSupportedTransactionVersion"] == 0

    def test_skip_failed(self, monkeypatch):
        rpc = FakeRpc(
            transactions={
                "a": _tx("a", 1, 500_000_000, 1.0),
                "c": _tx("c", 2, 250_000_000, 1.0, err={"InstructionError": [0, 1]}),
            }
        )
        source = SolanaRpcSource(skip_failed=True)
        monkeypatch.setattr(source, "_call", rpc)
        records = asyncio.run(source.fetch(MINT))
        assert [record.signature for record in records] == ["a"]

    def test_no_token_accounts(self, monkeypatch):
        source = SolanaRpcSource()
        monkeypatch.setattr(source, "_call", FakeRpc(accounts=False))
        with pytest.raises(NoDataError, match="No token accounts found"):
            asyncio.run(source.fetch(MINT))

    def test_no_signatures(self, monkeypatch):
        source = SolanaRpcSource()
        monkeypatch.setattr(source, "_call", FakeRpc())
        assert asyncio.run(source.fetch(MINT)) is None


class StaticSource(TransactionSource):
    name = "static"

    def __init__(self, records):
        self.records = records

    def supports(self, address):
        return True

    async def fetch(self, address, limit=None):
        return self.records


class TestLoadChart:
    def test_builds_series(self):
        from txcandles.models import TransactionRecord

        records = [
            TransactionRecord.from_rpc(_tx("a", 2, 1_000_000_000, 1.0)),
            TransactionRecord.from_rpc(_tx("b", 1, 1_200_000_000, 1.0)),
        ]
        series = asyncio.run(load_chart(MINT, source=StaticSource(records), now=NOW))
        assert series.provenance is Provenance.REAL
        assert [candle.close for candle in series] == pytest.approx([1.0, 1.2])

    def test_no_history(self):
        with pytest.raises(NoDataError, match="No transaction history found"):
            asyncio.run(load_chart(MINT, source=StaticSource(None), now=NOW))

    def test_fee_only_without_candles(self):
        from txcandles.models import TransactionRecord

        records = [TransactionRecord(block_time=None, fee=5000)]
        with pytest.raises(NoDataError, match="No valid transaction data found"):
            asyncio.run(
                load_chart(MINT, source=StaticSource(records), policy="fee-only", now=NOW)
            )


class FakeResponse:
    def __init__(self, status=200, body=None):
        self.status = status
        self.body = body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def json(self, content_type=None):
        if isinstance(self.body, Exception):
            raise self.body
        return self.body


class FailingRequest:
    def __init__(self, exc):
        self.exc = exc

    async def __aenter__(self):
        raise self.exc

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    """Answers every POST with one canned response or exception."""

    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.sent = []

    def post(self, url, json):
        self.sent.append((url, json))
        if self.exc is not None:
            return FailingRequest(self.exc)
        return self.response


def _call(session, method="getSignaturesForAddress"):
    source = SolanaRpcSource(SourceConfig(timeout=0.3))
    return asyncio.run(source._call(session, method, [MINT]))


class TestRpcCall:
    def test_returns_result(self):
        session = FakeSession(FakeResponse(body={"jsonrpc": "2.0", "id": 1, "result": [1, 2]}))
        assert _call(session) == [1, 2]
        url, payload = session.sent[0]
        assert url == SourceConfig().rpc_url
        assert payload["method"] == "getSignaturesForAddress"
        assert payload["params"] == [MINT]

    def test_http_error_status(self):
        session = FakeSession(FakeResponse(status=429, body={}))
        with pytest.raises(SourceError, match="HTTP 429") as excinfo:
            _call(session)
        assert excinfo.value.status == 429
        assert excinfo.value.code is None

    def test_json_rpc_error_payload(self):
        body = {"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid param"}}
        with pytest.raises(SourceError, match="Invalid param") as excinfo:
            _call(FakeSession(FakeResponse(body=body)), method="getTransaction")
        assert excinfo.value.code == -32602
        assert excinfo.value.status == 200

    @pytest.mark.parametrize("body", [None, [1, 2], "ok"])
    def test_non_object_body(self, body):
        with pytest.raises(SourceError, match="non-object") as excinfo:
            _call(FakeSession(FakeResponse(body=body)))
        assert excinfo.value.status == 200

    def test_timeout_is_wrapped_and_chained(self):
        original = asyncio.TimeoutError()
        with pytest.raises(SourceError, match="timed out") as excinfo:
            _call(FakeSession(exc=original))
        assert excinfo.value.__cause__ is original

    def test_transport_error_is_wrapped_and_chained(self):
        original = aiohttp.ClientConnectionError("connection refused")
        with pytest.raises(SourceError, match="connection refused") as excinfo:
            _call(FakeSession(exc=original))
        assert excinfo.value.__cause__ is original
        assert excinfo.value.status is None

    def test_undecodable_body_is_wrapped(self):
        original = json.JSONDecodeError("Expecting value", "<html>", 0)
        with pytest.raises(SourceError) as excinfo:
            _call(FakeSession(FakeResponse(body=original)))
        assert excinfo.value.__cause__ is original


class SlowRpc(FakeRpc):
    """Tracks how many ``getTransaction`` calls are in flight at once."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.in_flight = 0
        self.peak = 0

    async def __call__(self, session, method, params):
        if method != "getTransaction":
            return await super().__call__(session, method, params)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        return await super().__call__(session, method, params)


def test_fetch_bounds_concurrent_requests(monkeypatch):
    transactions = {f"s{i}": _tx(f"s{i}", 1, 500_000_000, 1.0) for i in range(12)}
    rpc = SlowRpc(transactions=transactions)
    source = SolanaRpcSource(SourceConfig(max_concurrency=3))
    monkeypatch.setattr(source, "_call", rpc)

    records = asyncio.run(source.fetch(MINT))

    assert len(records) == 12
    assert rpc.peak == 3


def test_fetch_ignores_malformed_signature_rows_and_results(monkeypatch):
    rpc = FakeRpc(transactions={"a": _tx("a", 1, 500_000_000, 1.0), "b": [1, 2]})
    real_call = rpc.__call__

    async def call(session, method, params):
        if method == "getSignaturesForAddress":
            return [{"signature": "a"}, {"err": None}, "junk", {"signature": "b"}]
        return await real_call(session, method, params)

    source = SolanaRpcSource()
    monkeypatch.setattr(source, "_call", call)
    records = asyncio.run(source.fetch(MINT))
    assert [record.signature for record in records] == ["a"]
