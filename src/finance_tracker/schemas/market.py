"""Pydantic schemas for market price and price cache endpoints."""
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from decimal import Decimal


class PriceQuoteDto(BaseModel):
    symbol: str
    price: Decimal
    change_absolute: Decimal = Field(alias="dayChange")
    change_percent: Decimal = Field(alias="percentChange")
    fetched_at: datetime = Field(alias="fetchedAt")
    source: str

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class PriceQuoteResponse(BaseModel):
    success: bool = True
    data: PriceQuoteDto


class MultiplePriceResponse(BaseModel):
    success: bool = True
    count: int
    data: list[PriceQuoteDto]


class CacheEntryDto(BaseModel):
    symbol: str
    price: Decimal
    source: str
    age_seconds: float = Field(alias="ageSeconds")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class CacheStatsResponse(BaseModel):
    cached_symbols: int = Field(alias="cachedSymbols")
    freshness_window_seconds: int = Field(alias="freshnessWindowSeconds")
    entries: list[CacheEntryDto]

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class CacheClearResponse(BaseModel):
    success: bool = True
    cleared_symbols: int = Field(alias="clearedSymbols")

    model_config = ConfigDict(populate_by_name=True)
