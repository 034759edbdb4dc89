from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.infrastructure.db.models import MutualFundModel, StockModel


@pytest.fixture()
async def seeded(db_session):
    db_session.add_all([
        StockModel(
            ticker="IDEA", name="Vodafone Idea Limited", exchange="NSE",
            sector="Telecommunications", industry="Diversified",
            current_price=Decimal("13.40"), previous_close=Decimal("14.00"),
            day_change=Decimal("-0.60"), day_change_percent=Decimal("-4.29"),
            is_penny_stock=True,
            price_history=[
                {"date": "2024-03-04", "close": 13.9},
                {"date": "2024-03-05", "close": 13.4},
            ],
        ),
        StockModel(
            ticker="SBIN", name="State Bank of India", exchange="NSE",
            sector="Banking", industry="Public Banking",
            current_price=Decimal("760.00"), previous_close=Decimal("750.00"),
            day_change=Decimal("10.00"), day_change_percent=Decimal("1.33"),
            is_penny_stock=False,
        ),
        MutualFundModel(
            scheme_code="122639", scheme_name="Parag Parikh Flexi Cap Fund - Direct Plan - Growth",
            fund_house="Parag Parikh", category="Equity", sub_category="Multi Cap",
            nav=Decimal("70.1234"), previous_nav=Decimal("70.0000"), nav_date=date(2024, 3, 5),
            nav_history=[{"date": "2024-03-05", "nav": 70.1234}],
        ),
        MutualFundModel(
            scheme_code="118989", scheme_name="HDFC Corporate Bond Fund - Growth",
            fund_house="HDFC Mutual Fund", category="Debt", sub_category="Corporate Bond",
            nav=Decimal("31.5000"), previous_nav=Decimal("31.4000"), nav_date=date(2024, 3, 5),
            nav_history=[
                {"date": "2024-02-04", "nav": 30.0},
                {"date": "2024-03-05", "nav": 31.5},
            ],
        ),
    ])
    await db_session.commit()


@pytest.mark.asyncio
@pytest.mark.integration
class TestStockRoutes:
    async def test_list_penny_stocks(self, client, seeded):
        response = await client.get("/api/v1/stocks", params={"penny_only": "true"})

        assert response.status_code == 200
        assert [s["ticker"] for s in response.json()] == ["IDEA"]

    async def test_list_by_sector(self, client, seeded):
        response = await client.get("/api/v1/stocks", params={"sector": "Banking"})

        assert [s["ticker"] for s in response.json()] == ["SBIN"]

    async def test_get_stock(self, client, seeded):
        response = await client.get("/api/v1/stocks/idea")

        body = response.json()
        assert response.status_code == 200
        assert body["current_price"] == 13.4
        assert body["is_penny_stock"] is True

    async def test_history_returns_newest_days(self, client, seeded):
        response = await client.get("/api/v1/stocks/IDEA/history", params={"days": 1})

        assert response.json()["history"] == [{"date": "2024-03-05", "close": 13.4}]

    async def test_unknown_stock_is_404(self, client, seeded):
        response = await client.get("/api/v1/stocks/GHOST")

        assert response.status_code == 404

    async def test_sectors(self, client, seeded):
        response = await client.get("/api/v1/stocks/sectors")

        assert response.json() == {"sectors": ["Banking", "Telecommunications"], "count": 2}

    async def test_gainers_and_losers(self, client, seeded):
        gainers = await client.get("/api/v1/stocks/gainers")
        losers = await client.get("/api/v1/stocks/losers", params={"limit": 5})

        assert [s["ticker"] for s in gainers.json()] == ["SBIN"]
        assert [s["ticker"] for s in losers.json()] == ["IDEA"]
        assert losers.json()[0]["day_change_percent"] == -4.29

    async def test_search_matches_ticker_name_or_sector(self, client, seeded):
        by_ticker = await client.get("/api/v1/stocks/search/idea")
        by_sector = await client.get("/api/v1/stocks/search/BANKING")
        wildcard = await client.get("/api/v1/stocks/search/%25%25")

        assert [s["ticker"] for s in by_ticker.json()] == ["IDEA"]
        assert [s["ticker"] for s in by_sector.json()] == ["SBIN"]
        assert wildcard.json() == []

    async def test_search_query_too_short_is_400(self, client, seeded):
        response = await client.get("/api/v1/stocks/search/i")

        assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
class TestMutualFundRoutes:
    async def test_list_by_category(self, client, seeded):
        response = await client.get("/api/v1/mutual-funds", params={"category": "Equity"})

        funds = response.json()
        assert [f["scheme_code"] for f in funds] == ["122639"]
        assert "nav_history" not in funds[0]

    async def test_get_fund_includes_history(self, client, seeded):
        response = await client.get("/api/v1/mutual-funds/122639")

        body = response.json()
        assert body["nav"] == 70.1234
        assert body["nav_date"] == "2024-03-05"
        assert body["nav_history"] == [{"date": "2024-03-05", "nav": 70.1234}]

    async def test_unknown_fund_is_404(self, client, seeded):
        response = await client.get("/api/v1/mutual-funds/000000")

        assert response.status_code == 404

    async def test_categories_and_fund_houses(self, client, seeded):
        categories = await client.get("/api/v1/mutual-funds/categories")
        fund_houses = await client.get("/api/v1/mutual-funds/fund-houses")

        assert categories.json() == {"categories": ["Debt", "Equity"], "count": 2}
        assert fund_houses.json() == {"fund_houses": ["HDFC Mutual Fund", "Parag Parikh"], "count": 2}

    async def test_top_performers_ranks_by_nav_return(self, client, seeded):
        response = await client.get("/api/v1/mutual-funds/top-performers", params={"period": "1Month"})

        body = response.json()
        assert body["period"] == "1Month"
        assert body["count"] == 1
        assert body["funds"][0]["scheme_code"] == "118989"
        assert body["funds"][0]["return_percent"] == 5.0

    async def test_top_performers_rejects_unknown_period(self, client, seeded):
        response = await client.get("/api/v1/mutual-funds/top-performers", params={"period": "10Year"})

        assert response.status_code == 400

    async def test_search_funds(self, client, seeded):
        response = await client.get("/api/v1/mutual-funds/search/hdfc")

        funds = response.json()
        assert [f["scheme_code"] for f in funds] == ["118989"]
        assert "nav_history" not in funds[0]


@pytest.mark.asyncio
@pytest.mark.integration
class TestOperationalRoutes:
    async def test_market_status(self, client):
        response = await client.get("/api/v1/market/status")

        body = response.json()
        assert response.status_code == 200
        assert body["market_open"] == "09:15"
        assert body["market_close"] == "15:30"
        assert isinstance(body["is_open"], bool)

    async def test_market_indices(self, client):
        response = await client.get("/api/v1/market/indices")

        assert response.json()["count"] == 1

    async def test_sync_routes_disabled_without_scheduler(self, client):
        response = await client.get("/api/v1/sync/status")

        assert response.status_code == 503

    async def test_force_sync_reports_execution(self, app, client):
        sync_service = MagicMock()
        sync_service.force_sync_stocks = AsyncMock(return_value=False)
        sync_service.get_sync_status.return_value = {"is_running": True, "active_sync": "mutual_funds"}
        app.state.sync_service = sync_service

        response = await client.post("/api/v1/sync/stocks")

        assert response.json() == {
            "executed": False,
            "status": {"is_running": True, "active_sync": "mutual_funds"},
        }

    async def test_realtime_stats(self, client):
        response = await client.get("/api/v1/realtime/stats")

        assert response.json() == {"total_clients": 0, "is_running": False, "clients": []}

    async def test_health(self, client):
        response = await client.get("/health")

        body = response.json()
        assert body["status"] == "healthy"
        assert body["services"]["database"] == "connected"
        assert body["services"]["scheduler"] == "disabled"
