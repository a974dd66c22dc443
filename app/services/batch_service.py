from __future__ import annotations

import logging
import random
import time
from collections import Counter
from dataclasses import dataclass
from threading import Lock
from typing import Callable

from app.clients.base import ProfileProvider, QuoteProvider, UpstreamError
from app.internal_metrics import MetricsCollector
from app.reference_data import all_time_high, fallback_name
from app.schemas.company import CompanyProfile
from app.schemas.quote import Quote
from app.schemas.stock import RecordTier, StockRecord
from app.services.pacing import PacingPolicy, process_paced
from app.utils.validators import percent_change

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    tier: RecordTier
    record: StockRecord


def build_record(symbol: str, quote: Quote, name: str, tier: RecordTier) -> StockRecord:
    return StockRecord(
        symbol=symbol,
        company_name=name,
        price=quote.current_price,
        change=quote.change,
        change_percent=quote.percent_change,
        high_day=quote.high,
        low_day=quote.low,
        open_price=quote.open,
        prev_close=quote.previous_close,
        update_time=quote.timestamp,
        all_time_high=all_time_high(symbol),
        data_source=tier,
    )


def synthesize_record(symbol: str, rng: random.Random) -> StockRecord:
    """Placeholder record for a symbol with no live quote.

    Price is drawn from [100, 999] and change from [-10, 9]; neither range is
    market calibrated. No update time or reference values are attached.
    """
    price = rng.randint(100, 999)
    change = rng.randint(-10, 9)
    return StockRecord(
        symbol=symbol,
        company_name=fallback_name(symbol),
        price=float(price),
        change=float(change),
        change_percent=percent_change(change, price),
        high_day=float(price + rng.randint(0, 19)),
        low_day=float(price - rng.randint(0, 19)),
        open_price=float(price - rng.randint(0, 9)),
        prev_close=float(price - change),
        update_time=None,
        all_time_high=None,
        data_source=RecordTier.SYNTHETIC,
    )


class BatchQuoteService:
    """Resolves symbols into StockRecords one at a time with fallback tiers."""

    def __init__(
        self,
        quote_client: QuoteProvider,
        profile_client: ProfileProvider,
        pacing: PacingPolicy,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self.quote_client = quote_client
        self.profile_client = profile_client
        self.pacing = pacing
        self.sleep = sleep
        self.rng = rng or random.Random()
        self.metrics = metrics
        self._batch_lock = Lock()

    def _try_quote(self, symbol: str) -> Quote | None:
        try:
            return self.quote_client.fetch_quote(symbol)
        except UpstreamError as exc:
            logger.warning(f"Quote unavailable for {symbol}: {exc}")
            return None

    def _try_profile(self, symbol: str) -> CompanyProfile | None:
        try:
            return self.profile_client.fetch_profile(symbol)
        except UpstreamError as exc:
            logger.warning(f"Profile unavailable for {symbol}: {exc}")
            return None

    def resolve_symbol(self, symbol: str) -> Resolution:
        quote = self._try_quote(symbol)
        profile = self._try_profile(symbol)

        if quote is None:
            resolution = Resolution(RecordTier.SYNTHETIC, synthesize_record(symbol, self.rng))
        elif profile is None:
            resolution = Resolution(RecordTier.PARTIAL, build_record(symbol, quote, fallback_name(symbol), RecordTier.PARTIAL))
        else:
            resolution = Resolution(RecordTier.FULL, build_record(symbol, quote, profile.name, RecordTier.FULL))

        if self.metrics is not None:
            self.metrics.record_tier(resolution.tier)
        logger.info(f"Resolved {symbol}", extra={"symbol": symbol, "tier": resolution.tier.value})
        return resolution

    def fetch_batch(self, symbols: list[str]) -> list[StockRecord]:
        if not symbols:
            return []

        # one batch at a time across request threads keeps the upstream call rate bounded
        with self._batch_lock:
            logger.info(f"Starting to fetch {len(symbols)} stocks sequentially")
            start = time.perf_counter()
            resolutions = process_paced(symbols, self.resolve_symbol, self.pacing, sleep=self.sleep)
        tiers = Counter(r.tier.value for r in resolutions)
        logger.info(
            "batch_complete",
            extra={
                "symbols": len(symbols),
                "live": tiers.get(RecordTier.FULL.value, 0),
                "partial": tiers.get(RecordTier.PARTIAL.value, 0),
                "synthetic": tiers.get(RecordTier.SYNTHETIC.value, 0),
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return [r.record for r in resolutions]
