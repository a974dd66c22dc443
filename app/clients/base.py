from __future__ import annotations

from abc import ABC, abstractmethod

from app.schemas.company import CompanyProfile
from app.schemas.quote import Quote


class UpstreamError(Exception):
    """Raised when an upstream call fails: network, timeout, status or payload."""

    def __init__(self, service: str, symbol: str, message: str, status_code: int | None = None):
        super().__init__(f"{service} request for {symbol} failed: {message}")
        self.service = service
        self.symbol = symbol
        self.status_code = status_code


class QuoteProvider(ABC):
    @abstractmethod
    def fetch_quote(self, symbol: str) -> Quote:
        raise NotImplementedError


class ProfileProvider(ABC):
    @abstractmethod
    def fetch_profile(self, symbol: str) -> CompanyProfile:
        raise NotImplementedError
