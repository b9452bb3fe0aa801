import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status

from finance_tracker.core.constants import MarketConstants
from finance_tracker.services.price_cache import PriceCache, get_price_cache, normalize_symbol
from finance_tracker.schemas.market import (
    CacheClearResponse,
    CacheEntryDto,
    CacheStatsResponse,
    MultiplePriceResponse,
    PriceQuoteDto,
    PriceQuoteResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/market", tags=["market"])


def _to_dto(quote) -> PriceQuoteDto:
    return PriceQuoteDto(
        symbol=quote.symbol,
        price=quote.price,
        change_absolute=quote.change_absolute,
        change_percent=quote.change_percent,
        fetched_at=quote.fetched_at,
        source=quote.source
    )


@router.get("/price/{symbol}", response_model=PriceQuoteResponse)
async def get_market_price(
    symbol: str,
    price_cache: PriceCache = Depends(get_price_cache)
):
    """
    Get the live price for one symbol with day change.

    Responses:
        200: Quote (possibly served from cache)
        404: No provider has a price for the symbol
    """
    normalized_symbol = normalize_symbol(symbol)
    result = await price_cache.lookup(normalized_symbol)

    if not result.is_available:
        logger.info(f"No price available for {normalized_symbol}: {result.reason}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Could not fetch price for {normalized_symbol}. Check symbol or try again later."
        )

    return PriceQuoteResponse(data=_to_dto(result.quote))


@router.get("/price", response_model=MultiplePriceResponse)
async def get_multiple_market_prices(
    symbols: Optional[str] = Query(None, description="Comma-separated symbols, e.g. INFY.NS,TCS.NS"),
    price_cache: PriceCache = Depends(get_price_cache)
):
    """
    Get prices for several symbols at once. Symbols without a price are omitted.

    Responses:
        200: Quotes that could be resolved
        400: Missing symbols or more than the per-request limit
    """
    if not symbols:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Symbols parameter required, e.g. /api/market/price?symbols=INFY.NS,TCS.NS"
        )

    symbol_list = [normalize_symbol(s) for s in symbols.split(",") if normalize_symbol(s)]

    if not symbol_list or len(symbol_list) > MarketConstants.MAX_SYMBOLS_PER_REQUEST:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Provide 1-{MarketConstants.MAX_SYMBOLS_PER_REQUEST} symbols (use comma separation)"
        )

    quotes = await price_cache.get_many(symbol_list)

    return MultiplePriceResponse(count=len(quotes), data=[_to_dto(q) for q in quotes])


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def get_cache_stats(price_cache: PriceCache = Depends(get_price_cache)):
    """Report how many symbols are cached and how old each entry is."""
    stats = price_cache.stats()
    return CacheStatsResponse(
        cached_symbols=stats.cached_symbols,
        freshness_window_seconds=stats.freshness_window_seconds,
        entries=[
            CacheEntryDto(symbol=e.symbol, price=e.price, source=e.source, age_seconds=e.age_seconds)
            for e in stats.entries
        ]
    )


@router.delete("/cache", response_model=CacheClearResponse)
async def clear_cache(price_cache: PriceCache = Depends(get_price_cache)):
    """Drop every cached quote so the next lookups go to the providers."""
    removed = price_cache.invalidate()
    return CacheClearResponse(cleared_symbols=removed)
