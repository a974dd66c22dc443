"""
Main application entry point.
Configures logging and serves the stock gateway with uvicorn.
"""
import logging
import sys

import uvicorn

from app.api.routes import create_app
from app.config.settings import settings

# Configure logging for stdout/stderr collectors
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
    force=True,
)

logger = logging.getLogger(__name__)

app = create_app()


def main():
    """Run the application."""
    logger.info(
        "Configuration loaded",
        extra={
            "host": settings.host,
            "port": settings.port,
            "log_level": settings.log_level,
            "api_key_present": bool(settings.finnhub_api_key),
            "api_key_length": len(settings.finnhub_api_key),
            "pacing_interval_ms": settings.pacing_interval_ms,
            "default_symbols": ",".join(settings.default_symbols),
        },
    )

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    main()
