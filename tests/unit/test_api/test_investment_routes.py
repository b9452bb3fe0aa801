"""
Unit tests for the investment lot and portfolio summary endpoints.

Services are replaced through FastAPI dependency overrides, so no database
is needed.
"""
import pytest
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from finance_tracker.api.routes.investments import get_investment_lot_service, get_portfolio_service
from finance_tracker.services.result_objects import AddLotResult, DeleteLotResult, ErrorCode, UpdateLotResult
from finance_tracker.services.valuation_objects import Holding, PortfolioSummary


@pytest.fixture
def lot_service(test_app):
    service = MagicMock()
    service.list_lots_async = AsyncMock()
    service.add_lot_async = AsyncMock()
    service.update_lot_async = AsyncMock()
    service.delete_lot_async = AsyncMock()
    test_app.dependency_overrides[get_investment_lot_service] = lambda: service
    return service


@pytest.fixture
def portfolio_service(test_app):
    service = MagicMock()
    service.get_portfolio_summary_async = AsyncMock()
    test_app.dependency_overrides[get_portfolio_service] = lambda: service
    return service


@pytest.fixture
def add_payload():
    return {
        "accountId": 10,
        "symbol": "infy.ns",
        "displayName": "Infosys Ltd",
        "quantity": "10",
        "unitCost": "1450.50",
        "acquiredAt": "2024-06-03T00:00:00Z"
    }


class TestPortfolioSummary:

    @pytest.mark.unit
    def test_returns_camel_case_summary(self, client, portfolio_service):
        holding = Holding(
            symbol="INFY.NS",
            display_name="Infosys Ltd",
            total_quantity=Decimal("20"),
            total_cost_basis=Decimal("30000"),
            average_unit_cost=Decimal("1500"),
            current_price=Decimal("1550"),
            current_value=Decimal("31000"),
            profit_loss=Decimal("1000"),
            profit_loss_percent=Decimal("3.33"),
            price_source="yahoo_finance",
            lot_ids=(1, 3)
        )
        portfolio_service.get_portfolio_summary_async.return_value = PortfolioSummary(
            total_invested=Decimal("30000"),
            total_current_value=Decimal("31000"),
            total_profit_loss=Decimal("1000"),
            total_profit_loss_percent=Decimal("3.33"),
            holdings=(holding,)
        )

        response = client.get("/api/investments/portfolio/summary")

        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["totalInvested"]) == Decimal("30000")
        assert Decimal(body["totalCurrentValue"]) == Decimal("31000")
        assert body["totalHoldings"] == 1
        item = body["holdings"][0]
        assert item["displayName"] == "Infosys Ltd"
        assert Decimal(item["averageUnitCost"]) == Decimal("1500")
        assert item["priceSource"] == "yahoo_finance"
        assert item["lotIds"] == [1, 3]
        portfolio_service.get_portfolio_summary_async.assert_awaited_once_with(1)

    @pytest.mark.unit
    def test_empty_portfolio_is_all_zero(self, client, portfolio_service):
        portfolio_service.get_portfolio_summary_async.return_value = PortfolioSummary()

        response = client.get("/api/investments/portfolio/summary")

        assert response.status_code == 200
        body = response.json()
        assert body["totalHoldings"] == 0
        assert body["holdings"] == []
        assert Decimal(body["totalProfitLossPercent"]) == 0

    @pytest.mark.unit
    def test_store_failure_is_500(self, client, portfolio_service):
        portfolio_service.get_portfolio_summary_async.side_effect = RuntimeError("database unavailable")

        response = client.get("/api/investments/portfolio/summary")

        assert response.status_code == 500


class TestListInvestments:

    @pytest.mark.unit
    def test_lists_lots(self, client, lot_service, sample_lots):
        lot_service.list_lots_async.return_value = sample_lots

        response = client.get("/api/investments")

        assert response.status_code == 200
        body = response.json()
        assert body["totalLots"] == 3
        assert body["lots"][0]["symbol"] == "INFY.NS"
        assert body["lots"][0]["accountId"] == 10
        lot_service.list_lots_async.assert_awaited_once_with(1, None)

    @pytest.mark.unit
    def test_account_filter_is_passed_through(self, client, lot_service):
        lot_service.list_lots_async.return_value = []

        response = client.get("/api/investments", params={"accountId": 10})

        assert response.status_code == 200
        lot_service.list_lots_async.assert_awaited_once_with(1, 10)


class TestAddInvestment:

    @pytest.mark.unit
    def test_created_lot_is_201(self, client, lot_service, lot_factory, add_payload):
        lot_service.add_lot_async.return_value = AddLotResult(
            success=True,
            message="Successfully added investment in INFY.NS",
            created_lot=lot_factory(7, "INFY.NS", 10, "1450.50", "Infosys Ltd")
        )

        response = client.post("/api/investments", json=add_payload)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["lot"]["id"] == 7
        assert Decimal(body["lot"]["unitCost"]) == Decimal("1450.50")
        request = lot_service.add_lot_async.await_args.args[1]
        assert request.symbol == "INFY.NS"

    @pytest.mark.unit
    def test_unknown_account_is_404(self, client, lot_service, add_payload):
        lot_service.add_lot_async.return_value = AddLotResult(
            success=False,
            message="Brokerage account 10 not found or not accessible",
            errors=["Brokerage account not found or does not belong to this user"],
            error_code=ErrorCode.NOT_FOUND
        )

        response = client.post("/api/investments", json=add_payload)

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["lot"] is None

    @pytest.mark.unit
    @pytest.mark.parametrize("field,value", [("quantity", "0"), ("unitCost", "-1"), ("symbol", "   ")])
    def test_invalid_body_is_422(self, client, lot_service, add_payload, field, value):
        add_payload[field] = value

        response = client.post("/api/investments", json=add_payload)

        assert response.status_code == 422
        lot_service.add_lot_async.assert_not_awaited()


class TestUpdateInvestment:

    @pytest.mark.unit
    def test_updates_lot(self, client, lot_service, lot_factory):
        lot_service.update_lot_async.return_value = UpdateLotResult(
            success=True,
            message="Successfully updated investment in TCS.NS",
            updated_lot=lot_factory(5, "TCS.NS", 8, 3500),
            previous_quantity=Decimal("5"),
            previous_unit_cost=Decimal("3500")
        )

        response = client.put("/api/investments/5", json={"quantity": "8"})

        assert response.status_code == 200
        assert Decimal(response.json()["lot"]["quantity"]) == Decimal("8")
        lot_id, user_id, request = lot_service.update_lot_async.await_args.args
        assert (lot_id, user_id) == (5, 1)
        assert request.model_dump(exclude_unset=True) == {"quantity": Decimal("8")}

    @pytest.mark.unit
    def test_validation_failure_is_400(self, client, lot_service):
        lot_service.update_lot_async.return_value = UpdateLotResult(
            success=False,
            message="Invalid investment lot",
            errors=["Quantity must be greater than zero"],
            error_code=ErrorCode.VALIDATION_ERROR
        )

        response = client.put("/api/investments/5", json={"displayName": "TCS"})

        assert response.status_code == 400
        assert response.json()["errors"] == ["Quantity must be greater than zero"]


class TestDeleteInvestment:

    @pytest.mark.unit
    def test_deletes_lot(self, client, lot_service):
        lot_service.delete_lot_async.return_value = DeleteLotResult(
            success=True,
            message="Successfully deleted investment in INFY.NS",
            deleted_lot_id=3,
            deleted_symbol="INFY.NS"
        )

        response = client.delete("/api/investments/3")

        assert response.status_code == 200
        body = response.json()
        assert body["deletedLotId"] == 3
        assert body["deletedSymbol"] == "INFY.NS"

    @pytest.mark.unit
    def test_internal_error_is_500(self, client, lot_service):
        lot_service.delete_lot_async.return_value = DeleteLotResult(
            success=False,
            message="An error occurred while deleting the investment",
            errors=["connection reset"],
            error_code=ErrorCode.INTERNAL_ERROR
        )

        response = client.delete("/api/investments/3")

        assert response.status_code == 500
        assert response.json()["success"] is False
