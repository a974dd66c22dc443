from __future__ import annotations

import json
import logging
import time
from http.client import HTTPException
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from app.clients.base import ProfileProvider, QuoteProvider, UpstreamError
from app.internal_metrics import MetricsCollector
from app.schemas.company import CompanyProfile
from app.schemas.quote import Quote
from app.utils.validators import to_native_float, to_native_int

logger = logging.getLogger(__name__)


class FinnhubClient(QuoteProvider, ProfileProvider):
    """Finnhub REST client for /quote and /stock/profile2.

    One outbound call per invocation; no retry and no caching. Every failure
    surfaces as UpstreamError.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 8,
        metrics: MetricsCollector | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.metrics = metrics

    @property
    def has_credentials(self) -> bool:
        return bool(self._api_key)

    def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        query = urlencode({**params, "token": self._api_key})
        request = Request(f"{self.base_url}{path}?{query}", headers={"User-Agent": "market-dashboard/1.0"})
        with urlopen(request, timeout=self.timeout_seconds) as response:
            return json.loads(response.read().decode("utf-8"))

    def _call(self, service: str, path: str, symbol: str) -> dict[str, Any]:
        if not self._api_key:
            raise UpstreamError(service, symbol, "missing API token")

        start = time.perf_counter()
        success = False
        logger.debug(f"Requesting Finnhub {path}", extra={"symbol": symbol, "service": service})
        try:
            payload = self._get_json(path, {"symbol": symbol})
            if not isinstance(payload, dict):
                raise UpstreamError(service, symbol, "unexpected payload")
            success = True
            return payload
        except HTTPError as exc:
            raise UpstreamError(service, symbol, f"HTTP {exc.code}", status_code=exc.code) from exc
        except (URLError, HTTPException, TimeoutError, OSError) as exc:
            raise UpstreamError(service, symbol, str(exc)) from exc
        except ValueError as exc:
            raise UpstreamError(service, symbol, "invalid JSON") from exc
        finally:
            if self.metrics is not None:
                self.metrics.record_call(service, success=success, latency_ms=(time.perf_counter() - start) * 1000)

    def fetch_quote(self, symbol: str) -> Quote:
        data = self._call("quote", "/quote", symbol)
        if "c" not in data:
            raise UpstreamError("quote", symbol, "missing current price")
        return Quote(
            current_price=to_native_float(data.get("c")),
            change=to_native_float(data.get("d")),
            percent_change=to_native_float(data.get("dp")),
            high=to_native_float(data.get("h")),
            low=to_native_float(data.get("l")),
            open=to_native_float(data.get("o")),
            previous_close=to_native_float(data.get("pc")),
            timestamp=to_native_int(data.get("t")),
        )

    def fetch_profile(self, symbol: str) -> CompanyProfile:
        data = self._call("profile", "/stock/profile2", symbol)
        name = str(data.get("name") or "").strip()
        if not name:
            raise UpstreamError("profile", symbol, "missing company name")
        return CompanyProfile(
            name=name,
            ticker=str(data.get("ticker") or symbol),
            exchange=str(data.get("exchange") or ""),
            industry=str(data.get("finnhubIndustry") or ""),
            country=str(data.get("country") or ""),
            currency=str(data.get("currency") or "USD"),
            ipo=str(data.get("ipo") or ""),
            logo=str(data.get("logo") or ""),
            weburl=str(data.get("weburl") or ""),
            market_capitalization=to_native_float(data.get("marketCapitalization")),
            share_outstanding=to_native_float(data.get("shareOutstanding")),
        )
