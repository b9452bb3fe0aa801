"""Business logic service for investment lots."""
import logging
import time
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.db.models.investment_lot import InvestmentLot
from finance_tracker.repositories.investment_lot_repository import InvestmentLotRepository
from finance_tracker.schemas.investment import AddLotApiRequest, UpdateLotApiRequest
from finance_tracker.services.metrics_service import MetricsService, get_metrics_service
from finance_tracker.services.price_cache import normalize_symbol
from finance_tracker.services.result_objects import (
    AddLotResult,
    DeleteLotResult,
    ErrorCode,
    ServiceResult,
    UpdateLotResult,
)

logger = logging.getLogger(__name__)


def validate_lot_values(
    symbol: Optional[str],
    quantity: Optional[Decimal],
    unit_cost: Optional[Decimal]
) -> List[str]:
    """Return the data-integrity errors for a lot's symbol, quantity and unit cost."""
    errors = []
    if not normalize_symbol(symbol):
        errors.append("Symbol is required")
    if quantity is None or quantity <= 0:
        errors.append("Quantity must be greater than zero")
    if unit_cost is None or unit_cost < 0:
        errors.append("Unit cost must not be negative")
    return errors


class InvestmentLotService:
    """Service layer for creating, editing and deleting investment lots."""

    def __init__(self, db: AsyncSession, metrics_service: Optional[MetricsService] = None):
        self.db = db
        self.repository = InvestmentLotRepository(db)
        self.metrics_service = metrics_service or get_metrics_service()

    async def list_lots_async(self, user_id: int, account_id: Optional[int] = None) -> List[InvestmentLot]:
        """
        List a user's lots, most recently entered first.

        Args:
            user_id: Owner of the lots
            account_id: Optional brokerage account filter
        """
        if account_id is not None:
            return await self.repository.list_by_account(user_id, account_id)
        return await self.repository.list_recent_by_user(user_id)

    async def add_lot_async(self, user_id: int, request: AddLotApiRequest) -> AddLotResult:
        """
        Record a new purchase.

        Validates that the brokerage account belongs to the user and that the lot
        values are sane before persisting.

        Args:
            user_id: Owner of the new lot
            request: AddLotApiRequest with lot details

        Returns:
            AddLotResult with success status and the created lot
        """
        start_time = time.perf_counter()
        result = await self._add_lot(user_id, request)
        self._record_mutation("add", user_id, start_time, result)
        return result

    async def update_lot_async(self, lot_id: int, user_id: int, request: UpdateLotApiRequest) -> UpdateLotResult:
        """
        Edit an existing lot. Only fields present in the request change.

        Args:
            lot_id: Lot to update
            user_id: Owner of the lot
            request: UpdateLotApiRequest with the fields to change

        Returns:
            UpdateLotResult with success status and previous quantity/unit cost
        """
        start_time = time.perf_counter()
        result = await self._update_lot(lot_id, user_id, request)
        self._record_mutation("update", user_id, start_time, result)
        return result

    async def delete_lot_async(self, lot_id: int, user_id: int) -> DeleteLotResult:
        """
        Delete a lot.

        Args:
            lot_id: Lot to delete
            user_id: Owner of the lot

        Returns:
            DeleteLotResult with success status and deleted lot details
        """
        start_time = time.perf_counter()
        result = await self._delete_lot(lot_id, user_id)
        self._record_mutation("delete", user_id, start_time, result)
        return result

    async def _add_lot(self, user_id: int, request: AddLotApiRequest) -> AddLotResult:
        errors = validate_lot_values(request.symbol, request.quantity, request.unit_cost)
        if errors:
            return AddLotResult(
                success=False,
                message="Invalid investment lot",
                errors=errors,
                error_code=ErrorCode.VALIDATION_ERROR
            )

        try:
            account = await self.repository.get_owned_account(request.account_id, user_id)
            if not account:
                return AddLotResult(
                    success=False,
                    message=f"Brokerage account {request.account_id} not found or not accessible",
                    errors=["Brokerage account not found or does not belong to this user"],
                    error_code=ErrorCode.NOT_FOUND
                )

            lot = InvestmentLot(
                user_id=user_id,
                account_id=request.account_id,
                symbol=normalize_symbol(request.symbol),
                display_name=request.display_name,
                quantity=request.quantity,
                unit_cost=request.unit_cost,
                acquired_at=request.acquired_at
            )
            created = await self.repository.create(lot)
            await self.db.commit()

            logger.info(f"Added lot {created.id} for user {user_id}: {created.quantity} x {created.symbol}")

            return AddLotResult(
                success=True,
                message=f"Successfully added investment in {created.symbol}",
                created_lot=created
            )

        except Exception as e:
            logger.error(f"Error adding lot for user {user_id}: {e}", exc_info=True)
            await self.db.rollback()
            return AddLotResult(
                success=False,
                message="An error occurred while adding the investment",
                errors=[str(e)],
                error_code=ErrorCode.INTERNAL_ERROR
            )

    async def _update_lot(self, lot_id: int, user_id: int, request: UpdateLotApiRequest) -> UpdateLotResult:
        try:
            lot = await self.repository.get_owned(lot_id, user_id)
            if not lot:
                return UpdateLotResult(
                    success=False,
                    message=f"Investment {lot_id} not found or not accessible",
                    errors=["Investment not found or does not belong to this user"],
                    error_code=ErrorCode.NOT_FOUND
                )

            changes = request.model_dump(exclude_unset=True, exclude_none=True)

            errors = validate_lot_values(
                changes.get("symbol", lot.symbol),
                changes.get("quantity", lot.quantity),
                changes.get("unit_cost", lot.unit_cost)
            )
            if errors:
                return UpdateLotResult(
                    success=False,
                    message="Invalid investment lot",
                    errors=errors,
                    error_code=ErrorCode.VALIDATION_ERROR
                )

            if "account_id" in changes and changes["account_id"] != lot.account_id:
                account = await self.repository.get_owned_account(changes["account_id"], user_id)
                if not account:
                    return UpdateLotResult(
                        success=False,
                        message=f"Brokerage account {changes['account_id']} not found or not accessible",
                        errors=["Brokerage account not found or does not belong to this user"],
                        error_code=ErrorCode.NOT_FOUND
                    )

            if "symbol" in changes:
                changes["symbol"] = normalize_symbol(changes["symbol"])

            previous_quantity = lot.quantity
            previous_unit_cost = lot.unit_cost

            updated = await self.repository.update_by_id(lot_id, changes) if changes else lot
            await self.db.commit()

            logger.info(f"Updated lot {lot_id} for user {user_id}: {', '.join(changes) or 'no changes'}")

            return UpdateLotResult(
                success=True,
                message=f"Successfully updated investment in {updated.symbol}",
                updated_lot=updated,
                previous_quantity=previous_quantity,
                previous_unit_cost=previous_unit_cost
            )

        except Exception as e:
            logger.error(f"Error updating lot {lot_id}: {e}", exc_info=True)
            await self.db.rollback()
            return UpdateLotResult(
                success=False,
                message="An error occurred while updating the investment",
                errors=[str(e)],
                error_code=ErrorCode.INTERNAL_ERROR
            )

    async def _delete_lot(self, lot_id: int, user_id: int) -> DeleteLotResult:
        try:
            lot = await self.repository.get_owned(lot_id, user_id)
            if not lot:
                return DeleteLotResult(
                    success=False,
                    message=f"Investment {lot_id} not found or not accessible",
                    errors=["Investment not found or does not belong to this user"],
                    error_code=ErrorCode.NOT_FOUND
                )

            symbol = lot.symbol
            await self.repository.delete_by_id(lot_id)
            await self.db.commit()

            logger.info(f"Deleted lot {lot_id} ({symbol}) for user {user_id}")

            return DeleteLotResult(
                success=True,
                message=f"Successfully deleted investment in {symbol}",
                deleted_lot_id=lot_id,
                deleted_symbol=symbol
            )

        except Exception as e:
            logger.error(f"Error deleting lot {lot_id}: {e}", exc_info=True)
            await self.db.rollback()
            return DeleteLotResult(
                success=False,
                message="An error occurred while deleting the investment",
                errors=[str(e)],
                error_code=ErrorCode.INTERNAL_ERROR
            )

    def _record_mutation(self, operation: str, user_id: int, start_time: float, result: ServiceResult) -> None:
        status = "success" if result.success else result.error_code.value
        duration = time.perf_counter() - start_time
        self.metrics_service.increment_lot_mutations(operation, user_id, status)
        self.metrics_service.record_lot_mutation_duration(duration, operation, user_id, status)
