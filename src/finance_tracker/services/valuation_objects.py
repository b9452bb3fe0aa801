"""Value objects for price quotes and portfolio valuation."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class ProviderQuote:
    """Raw quote as returned by an upstream provider, before normalization."""
    price: Decimal
    previous_close: Optional[Decimal] = None


@dataclass(frozen=True)
class PriceQuote:
    """Market price snapshot for a symbol, as stored in the price cache."""
    symbol: str
    price: Decimal
    change_absolute: Decimal
    change_percent: Decimal
    fetched_at: datetime
    source: str


@dataclass(frozen=True)
class CacheEntryStats:
    symbol: str
    price: Decimal
    source: str
    age_seconds: float


@dataclass(frozen=True)
class CacheStats:
    cached_symbols: int
    freshness_window_seconds: int
    entries: tuple[CacheEntryStats, ...] = ()


@dataclass(frozen=True)
class Holding:
    """Aggregated position in one symbol. Derived on every valuation, never stored."""
    symbol: str
    display_name: str
    total_quantity: Decimal
    total_cost_basis: Decimal
    average_unit_cost: Decimal
    current_price: Decimal
    current_value: Decimal
    profit_loss: Decimal
    profit_loss_percent: Decimal
    price_source: str
    lot_ids: tuple = ()


@dataclass(frozen=True)
class PortfolioSummary:
    total_invested: Decimal = Decimal("0")
    total_current_value: Decimal = Decimal("0")
    total_profit_loss: Decimal = Decimal("0")
    total_profit_loss_percent: Decimal = Decimal("0")
    holdings: tuple[Holding, ...] = field(default_factory=tuple)
