from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Market Dashboard Stock Gateway"
    app_version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    schema_version: str = "1.0"

    finnhub_api_key: str = ""
    finnhub_base_url: str = "https://finnhub.io/api/v1"
    request_timeout_seconds: int = 8

    # delay between symbols; each symbol costs two Finnhub calls
    pacing_interval_ms: int = 300

    default_symbols: list[str] = Field(
        default_factory=lambda: ["AAPL", "MSFT", "GOOGL", "META", "TSLA", "AMZN", "NVDA", "AVGO"]
    )
    synthetic_seed: int | None = None

    rate_limit_requests_per_minute: int = 60

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


settings = Settings()
