"""Business metrics service for OpenTelemetry instrumentation.

Provides counters and histograms for:
- Price lookups, cache hits/misses and provider failures
- Portfolio valuation duration
- Investment lot mutations (add/update/delete)
"""
import time
from contextlib import contextmanager
from functools import lru_cache
from typing import Generator, Optional

from opentelemetry import metrics

# Meter for business metrics
_meter = metrics.get_meter("FinanceTracker.API.Business", "1.0.0")

# Counters
_price_requests_total = _meter.create_counter(
    name="price_requests_total",
    description="Total number of price lookups by outcome",
    unit="1"
)

_price_cache_events_total = _meter.create_counter(
    name="price_cache_events_total",
    description="Price cache hits and misses",
    unit="1"
)

_quote_provider_calls_total = _meter.create_counter(
    name="quote_provider_calls_total",
    description="Quote provider calls by provider and outcome",
    unit="1"
)

_valuation_requests_total = _meter.create_counter(
    name="valuation_requests_total",
    description="Total number of portfolio valuation requests",
    unit="1"
)

_lot_mutations_total = _meter.create_counter(
    name="lot_mutations_total",
    description="Total number of investment lot mutations (add/update/delete)",
    unit="1"
)

# Histograms for duration tracking
_valuation_duration = _meter.create_histogram(
    name="valuation_duration_seconds",
    description="Duration of portfolio valuations in seconds",
    unit="s"
)

_lot_mutation_duration = _meter.create_histogram(
    name="lot_mutation_duration_seconds",
    description="Duration of investment lot mutations in seconds",
    unit="s"
)


class MetricsService:
    """Service for recording business metrics."""

    def increment_price_requests(
        self,
        symbol: Optional[str] = None,
        status: str = "requested"
    ) -> None:
        """Increment price request counter."""
        attributes = {"status": status}
        if symbol:
            attributes["symbol"] = symbol
        _price_requests_total.add(1, attributes)

    def increment_cache_event(self, event: str, symbol: Optional[str] = None) -> None:
        """Increment cache hit/miss counter."""
        attributes = {"event": event}
        if symbol:
            attributes["symbol"] = symbol
        _price_cache_events_total.add(1, attributes)

    def increment_provider_calls(self, provider: str, status: str = "success") -> None:
        """Increment quote provider call counter."""
        _quote_provider_calls_total.add(1, {"provider": provider, "status": status})

    def record_valuation_duration(
        self,
        duration_seconds: float,
        user_id: Optional[int] = None,
        status: str = "success"
    ) -> None:
        """Record portfolio valuation duration."""
        attributes = {"status": status}
        if user_id is not None:
            attributes["user_id"] = str(user_id)
        _valuation_duration.record(duration_seconds, attributes)

    def increment_lot_mutations(
        self,
        operation: str,
        user_id: Optional[int] = None,
        status: str = "success"
    ) -> None:
        """Increment lot mutation counter (add/update/delete)."""
        attributes = {"operation": operation, "status": status}
        if user_id is not None:
            attributes["user_id"] = str(user_id)
        _lot_mutations_total.add(1, attributes)

    def record_lot_mutation_duration(
        self,
        duration_seconds: float,
        operation: str,
        user_id: Optional[int] = None,
        status: str = "success"
    ) -> None:
        """Record lot mutation duration."""
        attributes = {"operation": operation, "status": status}
        if user_id is not None:
            attributes["user_id"] = str(user_id)
        _lot_mutation_duration.record(duration_seconds, attributes)

    @contextmanager
    def track_valuation(self, user_id: Optional[int] = None) -> Generator[None, None, None]:
        """Context manager for tracking portfolio valuation metrics."""
        attributes = {"status": "requested"}
        if user_id is not None:
            attributes["user_id"] = str(user_id)
        _valuation_requests_total.add(1, attributes)
        start_time = time.perf_counter()
        status = "success"
        try:
            yield
        except Exception:
            status = "error"
            raise
        finally:
            duration = time.perf_counter() - start_time
            self.record_valuation_duration(duration, user_id, status)


class MetricsPriceCacheObserver:
    """Price cache observer that forwards events to OpenTelemetry counters."""

    def __init__(self, metrics_service: MetricsService):
        self.metrics_service = metrics_service

    def on_cache_hit(self, symbol: str) -> None:
        self.metrics_service.increment_cache_event("hit", symbol)
        self.metrics_service.increment_price_requests(symbol, "cached")

    def on_cache_miss(self, symbol: str) -> None:
        self.metrics_service.increment_cache_event("miss", symbol)

    def on_fetch_success(self, symbol: str, provider: str) -> None:
        self.metrics_service.increment_provider_calls(provider, "success")
        self.metrics_service.increment_price_requests(symbol, "fetched")

    def on_fetch_failure(self, symbol: str, provider: Optional[str], reason: str) -> None:
        if provider:
            self.metrics_service.increment_provider_calls(provider, "failure")
        else:
            self.metrics_service.increment_price_requests(symbol, "unavailable")


@lru_cache()
def get_metrics_service() -> MetricsService:
    """Get singleton metrics service instance."""
    return MetricsService()
