"""Static reference tables used when live data is unavailable."""
from types import MappingProxyType

FALLBACK_COMPANY_NAMES = MappingProxyType(
    {
        "AAPL": "Apple Inc.",
        "MSFT": "Microsoft Corporation",
        "AMZN": "Amazon.com Inc.",
        "NVDA": "NVIDIA Corporation",
        "GOOGL": "Alphabet Inc.",
        "META": "Meta Platforms Inc.",
        "TSLA": "Tesla Inc.",
        "AVGO": "Broadcom Inc.",
    }
)

ALL_TIME_HIGHS = MappingProxyType(
    {
        "GOOGL": 208.7,
        "AVGO": 252.0,
        "AAPL": 260.0,
        "TSLA": 489.0,
        "META": 719.0,
        "MSFT": 468.0,
        "AMZN": 236.0,
        "NVDA": 153.0,
    }
)


def fallback_name(symbol: str) -> str:
    return FALLBACK_COMPANY_NAMES.get(symbol, symbol)


def all_time_high(symbol: str) -> float | None:
    return ALL_TIME_HIGHS.get(symbol)
