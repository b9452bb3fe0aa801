"""Upstream quote providers used by the price cache."""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Protocol
from urllib.parse import quote as url_quote

import httpx

from finance_tracker.core.config import Settings
from finance_tracker.core.constants import QuoteSourceConstants
from finance_tracker.services.valuation_objects import ProviderQuote

logger = logging.getLogger(__name__)


class QuoteProviderError(Exception):
    """Raised when a provider responds with an HTTP error."""


class QuoteProvider(Protocol):
    """
    Protocol for quote providers.

    Implementations return None when the response carries no usable price and
    may raise on network or HTTP errors; the price cache handles both.
    """

    name: str

    async def fetch_quote(self, symbol: str) -> Optional[ProviderQuote]:
        ...


def _to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a numeric or string field from a provider payload. NaN and infinities become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip().rstrip("%"))
        except InvalidOperation:
            return None
    else:
        return None
    return result if result.is_finite() else None


class YahooFinanceQuoteProvider:
    """Primary provider: Yahoo Finance chart API (no API key needed)."""

    name = QuoteSourceConstants.YAHOO_FINANCE

    def __init__(
        self,
        base_url: str = "https://query1.finance.yahoo.com",
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize Yahoo Finance provider.

        Args:
            base_url: Base URL for the chart API
            timeout_seconds: Request timeout in seconds
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout_seconds
        self._transport = transport

    async def fetch_quote(self, symbol: str) -> Optional[ProviderQuote]:
        url = f"{self.base_url}/v8/finance/chart/{url_quote(symbol, safe='')}"
        headers = {"User-Agent": QuoteSourceConstants.BROWSER_USER_AGENT}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(url, headers=headers)

        if response.status_code != 200:
            raise QuoteProviderError(
                f"Yahoo Finance returned {response.status_code} - {response.reason_phrase} for {symbol}"
            )

        return self._extract_quote(response.json(), symbol)

    def _extract_quote(self, json_data: dict, symbol: str) -> Optional[ProviderQuote]:
        try:
            meta = json_data["chart"]["result"][0]["meta"]
        except (KeyError, IndexError, TypeError):
            logger.warning(f"Yahoo Finance response for {symbol} has no chart metadata")
            return None

        price = _to_decimal(meta.get("regularMarketPrice"))
        if price is None:
            logger.warning(f"Yahoo Finance response for {symbol} has no regularMarketPrice")
            return None

        return ProviderQuote(price=price, previous_close=_to_decimal(meta.get("previousClose")))


class AlphaVantageQuoteProvider:
    """Fallback provider: Alpha Vantage GLOBAL_QUOTE endpoint (API key required)."""

    name = QuoteSourceConstants.ALPHA_VANTAGE

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://www.alphavantage.co",
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout_seconds
        self._transport = transport

    async def fetch_quote(self, symbol: str) -> Optional[ProviderQuote]:
        if not self.api_key:
            logger.warning("Alpha Vantage API key not configured, skipping provider")
            return None

        params = {
            "function": "GLOBAL_QUOTE",
            "symbol": symbol,
            "apikey": self.api_key
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(f"{self.base_url}/query", params=params)

        if response.status_code != 200:
            raise QuoteProviderError(
                f"Alpha Vantage returned {response.status_code} - {response.reason_phrase} for {symbol}"
            )

        return self._extract_quote(response.json(), symbol)

    def _extract_quote(self, json_data: dict, symbol: str) -> Optional[ProviderQuote]:
        quote = json_data.get("Global Quote") if isinstance(json_data, dict) else None
        if not quote:
            # Rate-limit notes and unknown symbols both come back without a quote body
            logger.warning(
                f"Alpha Vantage response for {symbol} has no quote. "
                f"Available fields: {', '.join(json_data.keys()) if isinstance(json_data, dict) else 'none'}"
            )
            return None

        price = _to_decimal(quote.get("05. price"))
        if price is None:
            logger.warning(f"Alpha Vantage quote for {symbol} has no price")
            return None

        return ProviderQuote(price=price, previous_close=_to_decimal(quote.get("08. previous close")))


def build_quote_providers(settings: Settings) -> List[QuoteProvider]:
    """Build the provider chain in priority order from settings."""
    providers: List[QuoteProvider] = [
        YahooFinanceQuoteProvider(
            base_url=settings.yahoo_finance_base_url,
            timeout_seconds=settings.quote_timeout_seconds
        )
    ]

    if settings.is_alpha_vantage_configured:
        providers.append(
            AlphaVantageQuoteProvider(
                api_key=settings.alpha_vantage_api_key,
                base_url=settings.alpha_vantage_base_url,
                timeout_seconds=settings.quote_timeout_seconds
            )
        )
    else:
        logger.info("Alpha Vantage not configured, using Yahoo Finance only")

    return providers
