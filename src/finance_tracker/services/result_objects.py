"""Result objects for service layer operations."""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Any

from finance_tracker.services.valuation_objects import PriceQuote


class ErrorCode(str, Enum):
    """Standardized error codes for service operations."""
    NONE = "none"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    INTERNAL_ERROR = "internal_error"


@dataclass
class ServiceResult:
    """Base result object for service operations."""
    success: bool
    message: str
    errors: list[str] = field(default_factory=list)
    error_code: ErrorCode = ErrorCode.NONE


@dataclass
class AddLotResult(ServiceResult):
    """Result for add_lot_async operation."""
    created_lot: Optional[Any] = None  # InvestmentLot model


@dataclass
class UpdateLotResult(ServiceResult):
    """Result for update_lot_async operation."""
    updated_lot: Optional[Any] = None  # InvestmentLot model
    previous_quantity: Decimal = Decimal("0")
    previous_unit_cost: Decimal = Decimal("0")


@dataclass
class DeleteLotResult(ServiceResult):
    """Result for delete_lot_async operation."""
    deleted_lot_id: Optional[int] = None
    deleted_symbol: Optional[str] = None


class LookupStatus(str, Enum):
    """Outcome of a price lookup."""
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class PriceLookupResult:
    """
    Either a quote or an explicit "no price" for a symbol.

    Provider failures end up here as UNAVAILABLE instead of propagating.
    """
    symbol: str
    status: LookupStatus
    quote: Optional[PriceQuote] = None
    reason: Optional[str] = None

    @classmethod
    def available(cls, quote: PriceQuote) -> "PriceLookupResult":
        return cls(symbol=quote.symbol, status=LookupStatus.AVAILABLE, quote=quote)

    @classmethod
    def unavailable(cls, symbol: str, reason: str) -> "PriceLookupResult":
        return cls(symbol=symbol, status=LookupStatus.UNAVAILABLE, reason=reason)

    @property
    def is_available(self) -> bool:
        return self.status == LookupStatus.AVAILABLE
