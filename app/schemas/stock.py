from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RecordTier(str, Enum):
    FULL = "live"
    PARTIAL = "partial"
    SYNTHETIC = "synthetic"


class StockRecord(BaseModel):
    """Merged quote + name record rendered by the dashboard cards."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    symbol: str
    company_name: str
    price: float
    change: float
    change_percent: float
    high_day: float
    low_day: float
    open_price: float
    prev_close: float
    update_time: int | None = None
    all_time_high: float | None = None
    data_source: RecordTier = RecordTier.FULL


class StocksResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    stocks: list[StockRecord]
    timestamp: int
    error: str | None = None
