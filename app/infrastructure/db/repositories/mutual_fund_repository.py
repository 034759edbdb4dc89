"""
Mutual Fund Repository
Lookup and NAV writes for tracked schemes
"""

from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import FundNav
from app.domain.services.history import NAV_VALUE_KEY, merge_history, nav_point_to_entry
from app.infrastructure.db.models import MutualFundModel
from app.utils.time import now_ist_naive


class MutualFundRepository:
    """Repository for mutual fund market records"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_scheme_code(self, scheme_code: str) -> Optional[MutualFundModel]:
        result = await self.session.execute(
            select(MutualFundModel).where(MutualFundModel.scheme_code == str(scheme_code))
        )
        return result.scalar_one_or_none()

    async def list_active_scheme_codes(self) -> List[str]:
        result = await self.session.execute(
            select(MutualFundModel.scheme_code)
            .where(MutualFundModel.is_active.is_(True))
            .order_by(MutualFundModel.scheme_code)
        )
        return list(result.scalars().all())

    async def list_funds(
        self,
        category: Optional[str] = None,
        fund_house: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[MutualFundModel]:
        query = select(MutualFundModel).where(MutualFundModel.is_active.is_(True))
        if category:
            query = query.where(MutualFundModel.category == category)
        if fund_house:
            query = query.where(MutualFundModel.fund_house == fund_house)
        query = query.order_by(MutualFundModel.scheme_name).offset(offset).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_categories(self) -> List[str]:
        result = await self.session.execute(
            select(MutualFundModel.category)
            .where(MutualFundModel.is_active.is_(True))
            .distinct()
            .order_by(MutualFundModel.category)
        )
        return list(result.scalars().all())

    async def list_fund_houses(self) -> List[str]:
        result = await self.session.execute(
            select(MutualFundModel.fund_house)
            .where(MutualFundModel.is_active.is_(True))
            .distinct()
            .order_by(MutualFundModel.fund_house)
        )
        return list(result.scalars().all())

    async def list_active(self) -> List[MutualFundModel]:
        result = await self.session.execute(
            select(MutualFundModel)
            .where(MutualFundModel.is_active.is_(True))
            .order_by(MutualFundModel.scheme_code)
        )
        return list(result.scalars().all())

    async def search(self, text: str, limit: int = 10) -> List[MutualFundModel]:
        query = (
            select(MutualFundModel)
            .where(MutualFundModel.is_active.is_(True))
            .where(or_(
                MutualFundModel.scheme_name.icontains(text, autoescape=True),
                MutualFundModel.fund_house.icontains(text, autoescape=True),
                MutualFundModel.category.icontains(text, autoescape=True),
            ))
            .order_by(MutualFundModel.scheme_name)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    def apply_snapshot(self, model: MutualFundModel, fund: FundNav, history_cap: int) -> None:
        model.nav = fund.nav
        model.previous_nav = fund.previous_nav
        model.nav_change = fund.nav_change
        model.nav_change_percent = fund.nav_change_percent
        model.nav_date = fund.nav_date
        model.nav_date_estimated = fund.nav_date_estimated
        model.nav_history = merge_history(
            model.nav_history or [],
            [nav_point_to_entry(p) for p in fund.nav_history],
            history_cap,
            NAV_VALUE_KEY,
        )
        model.last_updated = now_ist_naive()

    async def create(self, fund: FundNav, history_cap: int) -> MutualFundModel:
        model = MutualFundModel(
            scheme_code=fund.scheme_code,
            scheme_name=fund.scheme_name,
            fund_house=fund.fund_house,
            category=fund.category.value,
            sub_category=fund.sub_category,
            is_active=True,
            created_at=now_ist_naive(),
            nav_history=[],
        )
        self.apply_snapshot(model, fund, history_cap)
        self.session.add(model)
        await self.session.flush()
        return model
