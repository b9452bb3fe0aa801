import logging
from dataclasses import asdict
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.db.session import get_db
from finance_tracker.services.investment_lot_service import InvestmentLotService
from finance_tracker.services.portfolio_service import PortfolioService
from finance_tracker.services.price_cache import PriceCache, get_price_cache
from finance_tracker.services.result_objects import ErrorCode, ServiceResult
from finance_tracker.schemas.investment import (
    AddLotApiRequest,
    DeleteLotApiResponse,
    HoldingDto,
    InvestmentLotDto,
    InvestmentLotListResponse,
    LotMutationApiResponse,
    PortfolioSummaryResponse,
    UpdateLotApiRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/investments", tags=["investments"])

_ERROR_STATUS = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_investment_lot_service(db: AsyncSession = Depends(get_db)) -> InvestmentLotService:
    """Dependency to get InvestmentLotService instance."""
    return InvestmentLotService(db)


def get_portfolio_service(
    db: AsyncSession = Depends(get_db),
    price_cache: PriceCache = Depends(get_price_cache)
) -> PortfolioService:
    """Dependency to get PortfolioService instance backed by the shared price cache."""
    return PortfolioService(db, price_cache)


async def get_current_user_id() -> int:
    """
    Placeholder for authentication - gets current user ID.
    TODO: Replace with the session/token lookup once auth middleware is ported.
    """
    return 1


def _failure_response(result: ServiceResult, response) -> JSONResponse:
    return JSONResponse(
        status_code=_ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
        content=response.model_dump(mode="json", by_alias=True)
    )


@router.get("/portfolio/summary", response_model=PortfolioSummaryResponse)
async def get_portfolio_summary(
    user_id: int = Depends(get_current_user_id),
    service: PortfolioService = Depends(get_portfolio_service)
):
    """
    Get the user's portfolio valued at live prices.

    Holdings without a live price are valued at their average buy price.

    Responses:
        200: Portfolio summary (all zeros when the user has no investments)
        500: Internal server error
    """
    try:
        summary = await service.get_portfolio_summary_async(user_id)
    except Exception as e:
        logger.error(f"Unexpected error in get_portfolio_summary: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}"
        )

    return PortfolioSummaryResponse(
        total_invested=summary.total_invested,
        total_current_value=summary.total_current_value,
        total_profit_loss=summary.total_profit_loss,
        total_profit_loss_percent=summary.total_profit_loss_percent,
        total_holdings=len(summary.holdings),
        holdings=[HoldingDto(**asdict(h)) for h in summary.holdings]
    )


@router.get("", response_model=InvestmentLotListResponse)
async def list_investments(
    account_id: Optional[int] = Query(None, alias="accountId"),
    user_id: int = Depends(get_current_user_id),
    service: InvestmentLotService = Depends(get_investment_lot_service)
):
    """
    List the user's investment lots, optionally for one brokerage account.

    Responses:
        200: Lots, most recently entered first
        500: Internal server error
    """
    try:
        lots = await service.list_lots_async(user_id, account_id)
    except Exception as e:
        logger.error(f"Unexpected error in list_investments: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}"
        )

    lot_dtos = [InvestmentLotDto.model_validate(lot) for lot in lots]
    return InvestmentLotListResponse(lots=lot_dtos, total_lots=len(lot_dtos))


@router.post("", response_model=LotMutationApiResponse, status_code=status.HTTP_201_CREATED)
async def add_investment(
    request: AddLotApiRequest,
    user_id: int = Depends(get_current_user_id),
    service: InvestmentLotService = Depends(get_investment_lot_service)
):
    """
    Record a new purchase.

    Responses:
        201: Lot created
        400: Invalid lot values
        404: Brokerage account not found or not accessible
        422: Request body failed schema validation
        500: Internal server error
    """
    result = await service.add_lot_async(user_id, request)

    response = LotMutationApiResponse(
        success=result.success,
        message=result.message,
        errors=result.errors if result.errors else None,
        lot=InvestmentLotDto.model_validate(result.created_lot) if result.created_lot else None
    )

    if not result.success:
        return _failure_response(result, response)

    return response


@router.put("/{lot_id}", response_model=LotMutationApiResponse)
async def update_investment(
    lot_id: int,
    request: UpdateLotApiRequest,
    user_id: int = Depends(get_current_user_id),
    service: InvestmentLotService = Depends(get_investment_lot_service)
):
    """
    Edit an existing lot. Fields left out of the body are unchanged.

    Responses:
        200: Lot updated
        400: Invalid lot values
        404: Lot or target brokerage account not found
        500: Internal server error
    """
    result = await service.update_lot_async(lot_id, user_id, request)

    response = LotMutationApiResponse(
        success=result.success,
        message=result.message,
        errors=result.errors if result.errors else None,
        lot=InvestmentLotDto.model_validate(result.updated_lot) if result.updated_lot else None
    )

    if not result.success:
        return _failure_response(result, response)

    return response


@router.delete("/{lot_id}", response_model=DeleteLotApiResponse)
async def delete_investment(
    lot_id: int,
    user_id: int = Depends(get_current_user_id),
    service: InvestmentLotService = Depends(get_investment_lot_service)
):
    """
    Delete a lot.

    Responses:
        200: Lot deleted
        404: Lot not found or not accessible
        500: Internal server error
    """
    result = await service.delete_lot_async(lot_id, user_id)

    response = DeleteLotApiResponse(
        success=result.success,
        message=result.message,
        errors=result.errors if result.errors else None,
        deleted_lot_id=result.deleted_lot_id,
        deleted_symbol=result.deleted_symbol
    )

    if not result.success:
        return _failure_response(result, response)

    return response
