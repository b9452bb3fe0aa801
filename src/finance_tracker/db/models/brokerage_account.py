"""Brokerage account model representing a user's demat/brokerage accounts."""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime

from finance_tracker.db.session import Base


class BrokerageAccount(Base):
    """Brokerage account that holds a user's investment lots."""
    __tablename__ = "brokerage_accounts"
    __table_args__ = {'schema': 'app'}

    # Primary Key
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Owner
    user_id = Column(Integer, nullable=False, index=True)

    # Account Details
    broker_name = Column(String, nullable=False)
    account_number = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=datetime.utcnow)

    # Relationships
    lots = relationship("InvestmentLot", back_populates="account")

    def __repr__(self) -> str:
        return f"<BrokerageAccount(id={self.id}, broker_name={self.broker_name})>"
