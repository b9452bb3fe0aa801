"""Models module initialization."""
from finance_tracker.db.models.brokerage_account import BrokerageAccount
from finance_tracker.db.models.investment_lot import InvestmentLot

__all__ = [
    "BrokerageAccount",
    "InvestmentLot",
]
