import io
import json
import random
from http.client import BadStatusLine, IncompleteRead
from urllib.error import HTTPError, URLError

import pytest

from app.clients import finnhub_client as module
from app.clients.base import UpstreamError
from app.clients.finnhub_client import FinnhubClient
from app.internal_metrics import MetricsCollector
from app.schemas.stock import RecordTier
from app.services.batch_service import BatchQuoteService
from app.services.pacing import PacingPolicy

QUOTE_PAYLOAD = {"c": 261.74, "d": -1.26, "dp": -0.479, "h": 263.31, "l": 260.68, "o": 262.1, "pc": 263, "t": 1704067200}
PROFILE_PAYLOAD = {
    "country": "US",
    "currency": "USD",
    "exchange": "NASDAQ NMS - GLOBAL MARKET",
    "finnhubIndustry": "Technology",
    "ipo": "1980-12-12",
    "logo": "https://static.finnhub.io/logo/aapl.png",
    "marketCapitalization": 3500000,
    "name": "Apple Inc",
    "shareOutstanding": 15000,
    "ticker": "AAPL",
    "weburl": "https://www.apple.com/",
}


class FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


def make_client(api_key="secret", metrics=None):
    return FinnhubClient(base_url="https://finnhub.test/api/v1/", api_key=api_key, timeout_seconds=1, metrics=metrics)


def test_quote_normalization(monkeypatch):
    client = make_client()
    seen = {}

    def fake_get_json(path, params):
        seen["path"] = path
        seen["params"] = params
        return QUOTE_PAYLOAD

    monkeypatch.setattr(client, "_get_json", fake_get_json)
    quote = client.fetch_quote("AAPL")
    assert seen == {"path": "/quote", "params": {"symbol": "AAPL"}}
    assert quote.current_price == 261.74
    assert quote.change == -1.26
    assert quote.previous_close == 263.0
    assert isinstance(quote.previous_close, float)
    assert quote.timestamp == 1704067200


def test_quote_null_fields_default_to_zero(monkeypatch):
    client = make_client()
    monkeypatch.setattr(client, "_get_json", lambda path, params: {"c": 0, "d": None, "dp": None, "t": 0})
    quote = client.fetch_quote("ZZZZ")
    assert quote.change == 0.0
    assert quote.percent_change == 0.0


def test_quote_without_price_fails(monkeypatch):
    client = make_client()
    monkeypatch.setattr(client, "_get_json", lambda path, params: {"error": "no data"})
    with pytest.raises(UpstreamError):
        client.fetch_quote("AAPL")


def test_profile_normalization(monkeypatch):
    client = make_client()
    monkeypatch.setattr(client, "_get_json", lambda path, params: PROFILE_PAYLOAD)
    profile = client.fetch_profile("AAPL")
    assert profile.name == "Apple Inc"
    assert profile.industry == "Technology"
    assert profile.market_capitalization == 3500000.0


def test_empty_profile_fails(monkeypatch):
    client = make_client()
    monkeypatch.setattr(client, "_get_json", lambda path, params: {})
    with pytest.raises(UpstreamError) as info:
        client.fetch_profile("ZZZZ")
    assert info.value.service == "profile"
    assert info.value.symbol == "ZZZZ"


def test_missing_token_fails_without_network(monkeypatch):
    client = make_client(api_key="")

    def boom(*args, **kwargs):
        raise AssertionError("network should not be touched")

    monkeypatch.setattr(module, "urlopen", boom)
    assert client.has_credentials is False
    with pytest.raises(UpstreamError):
        client.fetch_quote("AAPL")
    with pytest.raises(UpstreamError):
        client.fetch_profile("AAPL")


def test_http_status_maps_to_upstream_error(monkeypatch):
    metrics = MetricsCollector()
    client = make_client(metrics=metrics)

    def fake_urlopen(request, timeout):
        raise HTTPError(request.full_url, 429, "Too Many Requests", hdrs=None, fp=None)

    monkeypatch.setattr(module, "urlopen", fake_urlopen)
    with pytest.raises(UpstreamError) as info:
        client.fetch_quote("AAPL")
    assert info.value.status_code == 429
    assert metrics.service_status()["quote"]["failed_requests"] == 1


def test_network_error_maps_to_upstream_error(monkeypatch):
    client = make_client()

    def fake_urlopen(request, timeout):
        raise URLError("connection refused")

    monkeypatch.setattr(module, "urlopen", fake_urlopen)
    with pytest.raises(UpstreamError):
        client.fetch_profile("AAPL")


def test_timeout_maps_to_upstream_error(monkeypatch):
    client = make_client()

    def fake_urlopen(request, timeout):
        raise TimeoutError("timed out")

    monkeypatch.setattr(module, "urlopen", fake_urlopen)
    with pytest.raises(UpstreamError):
        client.fetch_quote("AAPL")


def test_invalid_json_maps_to_upstream_error(monkeypatch):
    client = make_client()
    monkeypatch.setattr(module, "urlopen", lambda request, timeout: FakeResponse(b"<html>"))
    with pytest.raises(UpstreamError):
        client.fetch_quote("AAPL")


def test_request_carries_symbol_and_token(monkeypatch):
    metrics = MetricsCollector()
    client = make_client(metrics=metrics)
    seen = {}

    def fake_urlopen(request, timeout):
        seen["url"] = request.full_url
        seen["timeout"] = timeout
        return FakeResponse(json.dumps(QUOTE_PAYLOAD).encode("utf-8"))

    monkeypatch.setattr(module, "urlopen", fake_urlopen)
    client.fetch_quote("MSFT")
    assert seen["url"] == "https://finnhub.test/api/v1/quote?symbol=MSFT&token=secret"
    assert seen["timeout"] == 1
    assert metrics.service_status()["quote"]["successful_requests"] == 1


def test_truncated_body_maps_to_upstream_error(monkeypatch):
    client = make_client()

    def fake_urlopen(request, timeout):
        raise IncompleteRead(b'{"c": 1', 20)

    monkeypatch.setattr(module, "urlopen", fake_urlopen)
    with pytest.raises(UpstreamError):
        client.fetch_quote("AAPL")


def test_protocol_errors_degrade_batch_to_synthetic(monkeypatch):
    client = make_client()

    def fake_urlopen(request, timeout):
        raise BadStatusLine("garbage")

    monkeypatch.setattr(module, "urlopen", fake_urlopen)
    service = BatchQuoteService(client, client, PacingPolicy(interval_seconds=0), rng=random.Random(5))
    records = service.fetch_batch(["AAPL", "MSFT"])
    assert [r.symbol for r in records] == ["AAPL", "MSFT"]
    assert all(r.data_source == RecordTier.SYNTHETIC for r in records)
