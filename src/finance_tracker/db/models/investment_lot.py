"""Investment lot model representing a single stock purchase."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from finance_tracker.db.session import Base


class InvestmentLot(Base):
    """
    One purchase of an instrument.

    Lots are grouped by symbol at valuation time; nothing aggregated is stored.
    """
    __tablename__ = "investment_lots"
    __table_args__ = {'schema': 'app'}

    # Primary Key
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership
    user_id = Column(Integer, nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("app.brokerage_accounts.id"), nullable=False, index=True)

    # Instrument
    symbol = Column(String, nullable=False, index=True)
    display_name = Column(String, nullable=False)

    # Purchase
    quantity = Column(Numeric, nullable=False)
    unit_cost = Column(Numeric, nullable=False)
    acquired_at = Column(DateTime(timezone=True), nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=datetime.utcnow)

    # Relationships
    account = relationship("BrokerageAccount", back_populates="lots")

    def __repr__(self) -> str:
        return f"<InvestmentLot(id={self.id}, symbol={self.symbol}, quantity={self.quantity})>"
