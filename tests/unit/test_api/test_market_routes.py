"""
Unit tests for the market price and price cache endpoints.

The shared price cache is replaced with one backed by an in-memory provider.
"""
import pytest
from decimal import Decimal

from finance_tracker.services.price_cache import PriceCache, get_price_cache
from finance_tracker.services.valuation_objects import ProviderQuote


class InMemoryProvider:
    name = "in_memory"

    def __init__(self, prices):
        self.prices = prices
        self.calls = []

    async def fetch_quote(self, symbol: str):
        self.calls.append(symbol)
        if symbol not in self.prices:
            return None
        price, previous_close = self.prices[symbol]
        return ProviderQuote(price=Decimal(price), previous_close=Decimal(previous_close))


@pytest.fixture
def provider():
    return InMemoryProvider({"INFY.NS": ("1520", "1500"), "TCS.NS": ("3400", "3450")})


@pytest.fixture
def price_cache(test_app, provider):
    cache = PriceCache([provider])
    test_app.dependency_overrides[get_price_cache] = lambda: cache
    return cache


class TestGetMarketPrice:

    @pytest.mark.unit
    def test_returns_quote_with_day_change(self, client, price_cache):
        response = client.get("/api/market/price/infy.ns")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["symbol"] == "INFY.NS"
        assert Decimal(data["price"]) == Decimal("1520")
        assert Decimal(data["dayChange"]) == Decimal("20.00")
        assert Decimal(data["percentChange"]) == Decimal("1.33")
        assert data["source"] == "in_memory"
        assert "fetchedAt" in data

    @pytest.mark.unit
    def test_unknown_symbol_is_404(self, client, price_cache):
        response = client.get("/api/market/price/NOPE")

        assert response.status_code == 404
        assert "NOPE" in response.json()["detail"]

    @pytest.mark.unit
    def test_repeat_request_is_served_from_cache(self, client, price_cache, provider):
        client.get("/api/market/price/TCS.NS")
        client.get("/api/market/price/TCS.NS")

        assert provider.calls == ["TCS.NS"]


class TestGetMultipleMarketPrices:

    @pytest.mark.unit
    def test_unavailable_symbols_are_omitted(self, client, price_cache):
        response = client.get("/api/market/price", params={"symbols": "INFY.NS, tcs.ns,NOPE"})

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert [q["symbol"] for q in body["data"]] == ["INFY.NS", "TCS.NS"]

    @pytest.mark.unit
    def test_missing_symbols_is_400(self, client, price_cache):
        response = client.get("/api/market/price")

        assert response.status_code == 400

    @pytest.mark.unit
    def test_blank_symbols_is_400(self, client, price_cache):
        response = client.get("/api/market/price", params={"symbols": " , ,"})

        assert response.status_code == 400

    @pytest.mark.unit
    def test_too_many_symbols_is_400(self, client, price_cache):
        symbols = ",".join(f"SYM{i}" for i in range(21))

        response = client.get("/api/market/price", params={"symbols": symbols})

        assert response.status_code == 400


class TestCacheAdministration:

    @pytest.mark.unit
    def test_stats_list_cached_entries(self, client, price_cache):
        client.get("/api/market/price/INFY.NS")

        response = client.get("/api/market/cache/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["cachedSymbols"] == 1
        assert body["freshnessWindowSeconds"] == 300
        assert body["entries"][0]["symbol"] == "INFY.NS"
        assert body["entries"][0]["ageSeconds"] >= 0

    @pytest.mark.unit
    def test_clear_cache_forces_refetch(self, client, price_cache, provider):
        client.get("/api/market/price/INFY.NS")

        response = client.delete("/api/market/cache")
        client.get("/api/market/price/INFY.NS")

        assert response.status_code == 200
        assert response.json() == {"success": True, "clearedSymbols": 1}
        assert provider.calls == ["INFY.NS", "INFY.NS"]
