"""Repository for investment lot data access."""
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.db.models.brokerage_account import BrokerageAccount
from finance_tracker.db.models.investment_lot import InvestmentLot
from finance_tracker.repositories.base import BaseRepository


class InvestmentLotRepository(BaseRepository[InvestmentLot]):
    """Lot store: lists lots by owner and by brokerage account."""

    def __init__(self, db: AsyncSession):
        super().__init__(InvestmentLot, db)

    async def list_by_user(self, user_id: int) -> List[InvestmentLot]:
        """Get every lot owned by a user, oldest purchase first."""
        result = await self.db.execute(
            select(InvestmentLot)
            .where(InvestmentLot.user_id == user_id)
            .order_by(InvestmentLot.acquired_at, InvestmentLot.id)
        )
        return list(result.scalars().all())

    async def list_by_account(self, user_id: int, account_id: int) -> List[InvestmentLot]:
        """Get the lots a user holds in one brokerage account, newest first."""
        result = await self.db.execute(
            select(InvestmentLot)
            .where(
                InvestmentLot.user_id == user_id,
                InvestmentLot.account_id == account_id
            )
            .order_by(InvestmentLot.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_recent_by_user(self, user_id: int) -> List[InvestmentLot]:
        """Get every lot owned by a user, most recently entered first."""
        result = await self.db.execute(
            select(InvestmentLot)
            .where(InvestmentLot.user_id == user_id)
            .order_by(InvestmentLot.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_owned(self, lot_id: int, user_id: int) -> Optional[InvestmentLot]:
        """Get a lot only if it belongs to the user."""
        result = await self.db.execute(
            select(InvestmentLot).where(
                InvestmentLot.id == lot_id,
                InvestmentLot.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def get_owned_account(self, account_id: int, user_id: int) -> Optional[BrokerageAccount]:
        """Get a brokerage account only if it belongs to the user."""
        result = await self.db.execute(
            select(BrokerageAccount).where(
                BrokerageAccount.id == account_id,
                BrokerageAccount.user_id == user_id
            )
        )
        return result.scalar_one_or_none()
