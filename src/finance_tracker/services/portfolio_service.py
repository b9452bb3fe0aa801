"""Portfolio valuation service: lot store + price cache + holdings aggregator."""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.core.constants import QuoteSourceConstants
from finance_tracker.core.telemetry import get_tracer
from finance_tracker.repositories.investment_lot_repository import InvestmentLotRepository
from finance_tracker.services.holdings_aggregator import PriceLookup, compute_portfolio
from finance_tracker.services.metrics_service import MetricsService, get_metrics_service
from finance_tracker.services.valuation_objects import PortfolioSummary

logger = logging.getLogger(__name__)


class PortfolioService:
    """Values a user's whole portfolio on request. Holds no state between calls."""

    def __init__(
        self,
        db: AsyncSession,
        price_lookup: PriceLookup,
        metrics_service: Optional[MetricsService] = None
    ):
        self.repository = InvestmentLotRepository(db)
        self.price_lookup = price_lookup
        self.metrics_service = metrics_service or get_metrics_service()

    async def get_portfolio_summary_async(self, user_id: int) -> PortfolioSummary:
        """
        Compute the portfolio summary for a user.

        Missing prices never fail the valuation; lot store errors propagate.

        Args:
            user_id: Owner of the lots

        Returns:
            PortfolioSummary with live (or average-cost) valuation
        """
        with get_tracer().start_as_current_span("portfolio.valuation") as span:
            span.set_attribute("user.id", user_id)

            with self.metrics_service.track_valuation(user_id):
                lots = await self.repository.list_by_user(user_id)
                logger.info(f"Valuing {len(lots)} lots for user {user_id}")

                summary = await compute_portfolio(lots, self.price_lookup)

            span.set_attribute("portfolio.holdings", len(summary.holdings))
            span.set_attribute(
                "portfolio.fallback_holdings",
                sum(1 for h in summary.holdings if h.price_source == QuoteSourceConstants.AVERAGE_COST)
            )

        return summary
