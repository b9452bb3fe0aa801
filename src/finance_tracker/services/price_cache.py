"""Time-bounded price cache in front of an ordered chain of quote providers."""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from functools import lru_cache
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence

from finance_tracker.core.config import settings
from finance_tracker.core.constants import CacheConstants, MarketConstants
from finance_tracker.services.metrics_service import MetricsPriceCacheObserver, get_metrics_service
from finance_tracker.services.quote_providers import QuoteProvider, build_quote_providers
from finance_tracker.services.result_objects import PriceLookupResult
from finance_tracker.services.valuation_objects import (
    CacheEntryStats,
    CacheStats,
    PriceQuote,
    ProviderQuote,
)

logger = logging.getLogger(__name__)


class PriceCacheObserver(Protocol):
    """Optional diagnostics hook for cache and provider events."""

    def on_cache_hit(self, symbol: str) -> None:
        ...

    def on_cache_miss(self, symbol: str) -> None:
        ...

    def on_fetch_success(self, symbol: str, provider: str) -> None:
        ...

    def on_fetch_failure(self, symbol: str, provider: Optional[str], reason: str) -> None:
        """provider is None when every provider failed for the symbol."""
        ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _is_finite(value: Optional[Decimal]) -> bool:
    return isinstance(value, Decimal) and value.is_finite()


def normalize_symbol(symbol: Optional[str]) -> str:
    """Upper-case and trim a ticker; None becomes an empty string."""
    return (symbol or "").strip().upper()


class PriceCache:
    """
    Memoizes quotes per symbol for a fixed freshness window.

    On a miss, providers are tried in priority order and the first usable quote
    wins. Failed lookups are not cached, so the next call retries immediately.
    Provider errors and timeouts never reach the caller: they come back as an
    UNAVAILABLE PriceLookupResult (or None / omission from the convenience
    methods).

    Quotes are not user-scoped, so one instance is shared by all requests.
    Concurrent misses for the same symbol may both fetch; the last write wins.
    """

    def __init__(
        self,
        providers: Sequence[QuoteProvider],
        freshness_window_seconds: int = CacheConstants.DEFAULT_TTL_SECONDS,
        fetch_timeout_seconds: float = 5.0,
        clock: Optional[Callable[[], datetime]] = None,
        observer: Optional[PriceCacheObserver] = None
    ):
        """
        Initialize the price cache.

        Args:
            providers: Quote providers in priority order
            freshness_window_seconds: Maximum quote age served from cache (60-300)
            fetch_timeout_seconds: Upper bound for a single provider call
            clock: Returns the current time; injectable for tests
            observer: Optional diagnostics hook
        """
        if not CacheConstants.MIN_TTL_SECONDS <= freshness_window_seconds <= CacheConstants.MAX_TTL_SECONDS:
            raise ValueError(
                f"Freshness window must be between {CacheConstants.MIN_TTL_SECONDS} and "
                f"{CacheConstants.MAX_TTL_SECONDS} seconds, got {freshness_window_seconds}"
            )

        self.providers = list(providers)
        self.freshness_window = timedelta(seconds=freshness_window_seconds)
        self.fetch_timeout = fetch_timeout_seconds
        self._clock = clock or _utc_now
        self._observer = observer
        self._entries: Dict[str, PriceQuote] = {}

    async def lookup(self, symbol: str) -> PriceLookupResult:
        """
        Look up a price for one symbol.

        Args:
            symbol: Ticker, case-insensitive

        Returns:
            PriceLookupResult that is AVAILABLE with a quote or UNAVAILABLE with a reason
        """
        symbol = normalize_symbol(symbol)
        if not symbol:
            return PriceLookupResult.unavailable(symbol, "Symbol is required")

        cached = self._get_fresh(symbol)
        if cached is not None:
            logger.debug(f"[CACHE HIT] {symbol}")
            self._notify("on_cache_hit", symbol)
            return PriceLookupResult.available(cached)

        logger.info(f"[CACHE MISS] Fetching {symbol}...")
        self._notify("on_cache_miss", symbol)

        return await self._fetch_from_providers(symbol)

    async def get_price(self, symbol: str) -> Optional[PriceQuote]:
        """Get a quote for a symbol, or None when no provider has one."""
        result = await self.lookup(symbol)
        return result.quote

    async def get_many(self, symbols: Iterable[str]) -> List[PriceQuote]:
        """
        Look up several symbols concurrently.

        Returns:
            Quotes in request order; symbols without a price are omitted
        """
        unique_symbols = [s for s in dict.fromkeys(normalize_symbol(s) for s in symbols) if s]
        if not unique_symbols:
            return []

        results = await asyncio.gather(*(self.lookup(symbol) for symbol in unique_symbols))

        quotes = [result.quote for result in results if result.is_available]
        logger.info(f"Resolved {len(quotes)} prices out of {len(unique_symbols)} requested")
        return quotes

    def invalidate(self) -> int:
        """Drop every cached quote. Returns how many were removed."""
        removed = len(self._entries)
        self._entries.clear()
        logger.info(f"[CACHE CLEAR] Cleared {removed} cached symbols")
        return removed

    def stats(self) -> CacheStats:
        """Report cache size and per-entry age."""
        now = self._clock()
        entries = tuple(
            CacheEntryStats(
                symbol=quote.symbol,
                price=quote.price,
                source=quote.source,
                age_seconds=round((now - quote.fetched_at).total_seconds(), 3)
            )
            for quote in list(self._entries.values())
        )
        return CacheStats(
            cached_symbols=len(entries),
            freshness_window_seconds=int(self.freshness_window.total_seconds()),
            entries=entries
        )

    def _get_fresh(self, symbol: str) -> Optional[PriceQuote]:
        quote = self._entries.get(symbol)
        if quote is None:
            return None
        if self._clock() - quote.fetched_at < self.freshness_window:
            return quote
        return None

    async def _fetch_from_providers(self, symbol: str) -> PriceLookupResult:
        failures: List[str] = []

        for provider in self.providers:
            try:
                provider_quote = await asyncio.wait_for(
                    provider.fetch_quote(symbol),
                    timeout=self.fetch_timeout
                )
                quote = self._build_quote(symbol, provider_quote, provider.name)
            except asyncio.TimeoutError:
                reason = f"{provider.name}: timed out after {self.fetch_timeout}s"
                logger.warning(f"[PROVIDER TIMEOUT] {symbol} via {provider.name}")
                failures.append(reason)
                self._notify("on_fetch_failure", symbol, provider.name, reason)
                continue
            except Exception as ex:
                reason = f"{provider.name}: {ex}"
                logger.warning(f"[PROVIDER ERROR] {symbol} via {provider.name}: {ex}")
                failures.append(reason)
                self._notify("on_fetch_failure", symbol, provider.name, reason)
                continue

            if quote is None:
                reason = f"{provider.name}: no usable price"
                logger.info(f"[NO DATA] {symbol} via {provider.name}")
                failures.append(reason)
                self._notify("on_fetch_failure", symbol, provider.name, reason)
                continue

            self._entries[symbol] = quote
            logger.info(f"[FETCHED] {symbol}: {quote.price} ({quote.change_absolute:+}) via {provider.name}")
            self._notify("on_fetch_success", symbol, provider.name)
            return PriceLookupResult.available(quote)

        reason = "; ".join(failures) if failures else "No quote providers configured"
        logger.warning(f"[NOT FOUND] Unable to fetch price for {symbol}")
        self._notify("on_fetch_failure", symbol, None, reason)
        return PriceLookupResult.unavailable(symbol, reason)

    def _build_quote(self, symbol: str, provider_quote: Optional[ProviderQuote], source: str) -> Optional[PriceQuote]:
        """
        Normalize a provider quote, or return None when it has no usable price.

        The price is rounded to 2 decimal places; day change is measured against
        the unrounded price. Raises decimal.InvalidOperation for prices too large
        to round.
        """
        if provider_quote is None or not _is_finite(provider_quote.price):
            return None

        precision = Decimal(MarketConstants.CHANGE_PRECISION)
        raw_price = provider_quote.price
        price = raw_price.quantize(precision)
        if price <= 0:
            return None

        previous_close = provider_quote.previous_close
        if _is_finite(previous_close) and previous_close > 0:
            change_absolute = (raw_price - previous_close).quantize(precision)
            change_percent = ((raw_price - previous_close) / previous_close * 100).quantize(precision)
        else:
            change_absolute = Decimal("0")
            change_percent = Decimal("0")

        return PriceQuote(
            symbol=symbol,
            price=price,
            change_absolute=change_absolute,
            change_percent=change_percent,
            fetched_at=self._clock(),
            source=source
        )

    def _notify(self, event: str, *args) -> None:
        if self._observer is None:
            return
        try:
            getattr(self._observer, event)(*args)
        except Exception as ex:
            logger.error(f"Price cache observer failed on {event}: {ex}", exc_info=True)


@lru_cache()
def get_price_cache() -> PriceCache:
    """Get the process-wide price cache built from settings."""
    return PriceCache(
        providers=build_quote_providers(settings),
        freshness_window_seconds=settings.price_cache_ttl_seconds,
        fetch_timeout_seconds=settings.quote_timeout_seconds,
        observer=MetricsPriceCacheObserver(get_metrics_service())
    )
