from datetime import date
from decimal import Decimal

import pytest

from app.domain.models import NavPoint
from app.scheduler.data_sync import DataSyncService
from app.services.market_data_seeder import MarketDataSeeder


async def _no_sleep(seconds):
    return None


def _seeder(stock_source, fund_source, store, tickers=(), scheme_codes=()):
    return MarketDataSeeder(
        stock_source,
        fund_source,
        store,
        tickers=list(tickers),
        scheme_codes=list(scheme_codes),
        sleep=_no_sleep,
    )


@pytest.mark.asyncio
@pytest.mark.integration
class TestSeedMutualFunds:
    async def test_creates_unknown_schemes(self, store, stock_source, fund_source, make_fund):
        fund_source.funds = {
            "120503": make_fund("120503", history=[NavPoint(date=date(2024, 3, 4), nav=Decimal("45.00"))]),
            "118989": make_fund("118989"),
        }
        seeder = _seeder(stock_source, fund_source, store, scheme_codes=["120503", "118989", "999999"])

        report = await seeder.seed_mutual_funds()

        assert report.added == ["120503", "118989"]
        assert report.failed == ["999999"]
        assert await store.list_active_scheme_codes() == ["118989", "120503"]
        fund = await store.get_fund("120503")
        assert fund.nav == Decimal("45.1234")
        assert fund.nav_history == [{"date": "2024-03-04", "nav": 45.0}]

    async def test_existing_scheme_is_refreshed(self, store, stock_source, fund_source, make_fund):
        fund_source.funds = {"120503": make_fund("120503")}
        seeder = _seeder(stock_source, fund_source, store, scheme_codes=["120503"])
        await seeder.seed_mutual_funds()

        fund_source.funds = {"120503": make_fund("120503", nav="46.0000")}
        report = await seeder.seed_mutual_funds()

        assert report.added == []
        assert report.updated == ["120503"]
        assert (await store.get_fund("120503")).nav == Decimal("46.0000")

    async def test_seeded_funds_are_picked_up_by_sync(self, store, stock_source, fund_source, make_fund):
        fund_source.funds = {"120503": make_fund("120503")}
        service = DataSyncService(stock_source, fund_source, store, sleep=_no_sleep)
        await service.sync_mutual_fund_data()
        assert fund_source.fetch_many_calls == []

        await _seeder(stock_source, fund_source, store, scheme_codes=["120503"]).seed_mutual_funds()
        fund_source.funds = {"120503": make_fund("120503", nav="47.5000")}
        await service.sync_mutual_fund_data()

        assert fund_source.fetch_many_calls == [["120503"]]
        assert (await store.get_fund("120503")).nav == Decimal("47.5000")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_seed_stocks_adds_and_refreshes(store, stock_source, fund_source, make_quote):
    stock_source.quotes = {
        "IDEA": make_quote("IDEA", price="13.40", name="Vodafone Idea Telecom Limited"),
        "SBIN": make_quote("SBIN", price="760.00", name="State Bank of India"),
    }
    seeder = _seeder(stock_source, fund_source, store, tickers=["idea", "SBIN", "GHOST"])

    first = await seeder.seed_stocks()
    second = await seeder.seed_stocks()

    assert first.added == ["IDEA", "SBIN"]
    assert first.failed == ["GHOST"]
    assert second.updated == ["IDEA", "SBIN"]
    idea = await store.get_stock("IDEA")
    assert idea.sector == "Telecommunications"
    assert idea.is_penny_stock is True
    sbin = await store.get_stock("SBIN")
    assert sbin.sector == "Banking"
    assert sbin.is_penny_stock is False
