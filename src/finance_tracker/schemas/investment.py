"""Pydantic schemas for investment lot and portfolio API requests and responses."""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime
from decimal import Decimal
from typing import Optional


def _normalize_symbol(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    symbol = value.strip().upper()
    if not symbol:
        raise ValueError("Symbol must not be blank")
    return symbol


class InvestmentLotDto(BaseModel):
    id: int
    account_id: int = Field(alias="accountId")
    symbol: str
    display_name: str = Field(alias="displayName")
    quantity: Decimal
    unit_cost: Decimal = Field(alias="unitCost")
    acquired_at: datetime = Field(alias="acquiredAt")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class InvestmentLotListResponse(BaseModel):
    lots: list[InvestmentLotDto]
    total_lots: int = Field(alias="totalLots")

    model_config = ConfigDict(populate_by_name=True)


class AddLotApiRequest(BaseModel):
    account_id: int = Field(alias="accountId")
    symbol: str = Field(max_length=20)
    display_name: str = Field(min_length=1, alias="displayName")
    quantity: Decimal = Field(gt=0)
    unit_cost: Decimal = Field(ge=0, alias="unitCost")
    acquired_at: datetime = Field(alias="acquiredAt")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, value: str) -> str:
        return _normalize_symbol(value)


class UpdateLotApiRequest(BaseModel):
    account_id: Optional[int] = Field(None, alias="accountId")
    symbol: Optional[str] = Field(None, max_length=20)
    display_name: Optional[str] = Field(None, min_length=1, alias="displayName")
    quantity: Optional[Decimal] = Field(None, gt=0)
    unit_cost: Optional[Decimal] = Field(None, ge=0, alias="unitCost")
    acquired_at: Optional[datetime] = Field(None, alias="acquiredAt")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_symbol(value)


class LotMutationApiResponse(BaseModel):
    success: bool
    message: str
    errors: Optional[list[str]] = None
    lot: Optional[InvestmentLotDto] = None

    model_config = ConfigDict(populate_by_name=True)


class DeleteLotApiResponse(BaseModel):
    success: bool
    message: str
    errors: Optional[list[str]] = None
    deleted_lot_id: Optional[int] = Field(None, alias="deletedLotId")
    deleted_symbol: Optional[str] = Field(None, alias="deletedSymbol")

    model_config = ConfigDict(populate_by_name=True)


class HoldingDto(BaseModel):
    symbol: str
    display_name: str = Field(alias="displayName")
    total_quantity: Decimal = Field(alias="totalQuantity")
    total_cost_basis: Decimal = Field(alias="totalCostBasis")
    average_unit_cost: Decimal = Field(alias="averageUnitCost")
    current_price: Decimal = Field(alias="currentPrice")
    current_value: Decimal = Field(alias="currentValue")
    profit_loss: Decimal = Field(alias="profitLoss")
    profit_loss_percent: Decimal = Field(alias="profitLossPercent")
    price_source: str = Field(alias="priceSource")
    lot_ids: list[int] = Field(default_factory=list, alias="lotIds")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class PortfolioSummaryResponse(BaseModel):
    total_invested: Decimal = Field(alias="totalInvested")
    total_current_value: Decimal = Field(alias="totalCurrentValue")
    total_profit_loss: Decimal = Field(alias="totalProfitLoss")
    total_profit_loss_percent: Decimal = Field(alias="totalProfitLossPercent")
    total_holdings: int = Field(alias="totalHoldings")
    holdings: list[HoldingDto]

    model_config = ConfigDict(populate_by_name=True)
