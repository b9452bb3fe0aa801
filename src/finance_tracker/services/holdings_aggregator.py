"""
Holdings aggregation and valuation.

Turns a flat list of investment lots into per-symbol holdings and portfolio
totals, valuing each holding at its live price or, when no price is available,
at its average unit cost.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from finance_tracker.core.constants import QuoteSourceConstants
from finance_tracker.services.price_cache import normalize_symbol
from finance_tracker.services.valuation_objects import Holding, PortfolioSummary, PriceQuote

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class PriceLookup(Protocol):
    """Anything that can resolve quotes for many symbols at once (PriceCache or a fake)."""

    async def get_many(self, symbols: Iterable[str]) -> List[PriceQuote]:
        ...


@dataclass
class LotGroup:
    """Running totals for one symbol while lots are being grouped."""
    symbol: str
    display_name: str
    name_acquired_at: Optional[datetime]
    total_quantity: Decimal = ZERO
    total_cost_basis: Decimal = ZERO
    lot_ids: List[Any] = field(default_factory=list)


def _as_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        return None
    return result if result.is_finite() else None


def safe_percent(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator * 100, or 0 when the denominator is not positive."""
    if denominator <= ZERO:
        return ZERO
    return numerator / denominator * HUNDRED


def group_lots(lots: Sequence[Any]) -> List[LotGroup]:
    """
    Group lots by normalized symbol, in first-seen order.

    A lot with a blank symbol, a non-positive quantity or a negative unit cost
    contributes nothing. The display name comes from the earliest-acquired lot;
    lots without a purchase date never displace an existing name.
    """
    groups: Dict[str, LotGroup] = {}

    for lot in lots:
        symbol = normalize_symbol(getattr(lot, "symbol", None))
        quantity = _as_decimal(getattr(lot, "quantity", None))
        unit_cost = _as_decimal(getattr(lot, "unit_cost", None))
        lot_id = getattr(lot, "id", None)

        if not symbol or quantity is None or unit_cost is None or quantity <= ZERO or unit_cost < ZERO:
            logger.warning(
                f"Skipping invalid lot {lot_id}: symbol={symbol!r}, quantity={quantity}, unit_cost={unit_cost}"
            )
            continue

        display_name = getattr(lot, "display_name", None) or symbol
        acquired_at = getattr(lot, "acquired_at", None)

        group = groups.get(symbol)
        if group is None:
            group = LotGroup(symbol=symbol, display_name=display_name, name_acquired_at=acquired_at)
            groups[symbol] = group
        elif (
            acquired_at is not None
            and group.name_acquired_at is not None
            and acquired_at < group.name_acquired_at
        ):
            group.display_name = display_name
            group.name_acquired_at = acquired_at

        group.total_quantity += quantity
        group.total_cost_basis += quantity * unit_cost
        group.lot_ids.append(lot_id)

    return [group for group in groups.values() if group.total_quantity > ZERO]


def build_holding(group: LotGroup, quote: Optional[PriceQuote]) -> Holding:
    """Value one grouped symbol, falling back to average cost without a quote."""
    average_unit_cost = group.total_cost_basis / group.total_quantity

    if quote is not None:
        current_price = quote.price
        price_source = quote.source
    else:
        current_price = average_unit_cost
        price_source = QuoteSourceConstants.AVERAGE_COST

    current_value = group.total_quantity * current_price
    profit_loss = current_value - group.total_cost_basis

    return Holding(
        symbol=group.symbol,
        display_name=group.display_name,
        total_quantity=group.total_quantity,
        total_cost_basis=group.total_cost_basis,
        average_unit_cost=average_unit_cost,
        current_price=current_price,
        current_value=current_value,
        profit_loss=profit_loss,
        profit_loss_percent=safe_percent(profit_loss, group.total_cost_basis),
        price_source=price_source,
        lot_ids=tuple(group.lot_ids)
    )


async def compute_portfolio(lots: Sequence[Any], price_lookup: PriceLookup) -> PortfolioSummary:
    """
    Aggregate lots into holdings and value them.

    Args:
        lots: Investment lots (ORM rows or any object with symbol, display_name,
            quantity, unit_cost, acquired_at)
        price_lookup: Resolves current quotes; symbols it omits are valued at
            their average unit cost

    Returns:
        PortfolioSummary with one holding per symbol with a positive quantity
    """
    groups = group_lots(lots)
    if not groups:
        return PortfolioSummary()

    quotes = await price_lookup.get_many([group.symbol for group in groups])
    quotes_by_symbol = {normalize_symbol(quote.symbol): quote for quote in quotes}

    missing = [group.symbol for group in groups if group.symbol not in quotes_by_symbol]
    if missing:
        logger.info(f"No live price for {', '.join(missing)}, using average buy price")

    holdings = tuple(build_holding(group, quotes_by_symbol.get(group.symbol)) for group in groups)

    total_invested = sum((h.total_cost_basis for h in holdings), ZERO)
    total_current_value = sum((h.current_value for h in holdings), ZERO)
    total_profit_loss = total_current_value - total_invested

    return PortfolioSummary(
        total_invested=total_invested,
        total_current_value=total_current_value,
        total_profit_loss=total_profit_loss,
        total_profit_loss_percent=safe_percent(total_profit_loss, total_invested),
        holdings=holdings
    )
