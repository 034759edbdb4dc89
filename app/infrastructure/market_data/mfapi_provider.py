"""
mfapi.in Provider
Mutual fund NAVs published by AMFI, served through the mfapi.in JSON API
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

import httpx

from app.config import settings
from app.domain.models import FetchResult, FundCategory, FundNav, NavPoint
from app.infrastructure.market_data.batch import fetch_best_effort
from app.infrastructure.market_data.errors import SymbolNotFoundError, UpstreamFetchError
from app.utils.dates import parse_market_date
from app.utils.time import now_ist_naive, today_ist

logger = logging.getLogger(__name__)

_FUND_HOUSE_SUFFIX = re.compile(r"(MUTUALFUND_MF|_MF)$")


def categorize_fund(scheme_name: str) -> FundCategory:
    name = scheme_name.lower()

    if any(k in name for k in ("debt", "bond", "gilt")):
        return FundCategory.DEBT
    if any(k in name for k in ("hybrid", "balanced")):
        return FundCategory.HYBRID
    if any(k in name for k in ("equity", "growth", "value")):
        return FundCategory.EQUITY
    if any(k in name for k in ("index", "etf")):
        return FundCategory.INDEX
    return FundCategory.OTHER


def get_sub_category(scheme_name: str) -> str:
    name = scheme_name.lower()

    if "large cap" in name or "bluechip" in name:
        return "Large Cap"
    if "mid cap" in name:
        return "Mid Cap"
    if "small cap" in name:
        return "Small Cap"
    if "multi cap" in name or "flexi cap" in name:
        return "Multi Cap"
    if "sectoral" in name or "thematic" in name:
        return "Sectoral/Thematic"
    return "Diversified"


def clean_fund_house(raw: str) -> str:
    return _FUND_HOUSE_SUFFIX.sub("", raw or "").replace("_", " ").strip()


def _parse_nav(value: Any) -> Optional[Decimal]:
    try:
        nav = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not nav.is_finite() or nav <= 0:
        return None
    return nav


class MfApiProvider:
    """
    Mutual fund NAV provider

    mfapi.in returns NAV entries newest first with DD-MM-YYYY dates.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        history_cap: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.MFAPI_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.FUND_FETCH_TIMEOUT_SECONDS
        self.history_cap = history_cap if history_cap is not None else settings.NAV_HISTORY_CAP
        self._transport = transport
        self.session: Optional[httpx.AsyncClient] = None

    def _get_session(self) -> httpx.AsyncClient:
        if self.session is None:
            self.session = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self.session

    async def close(self) -> None:
        """Close HTTP session"""
        if self.session:
            await self.session.aclose()
            self.session = None

    async def fetch_one(self, scheme_code: str) -> FundNav:
        """
        Fetch latest NAV and NAV history for one scheme

        Raises:
            SymbolNotFoundError: unknown scheme or no NAV published
            UpstreamFetchError: any other failure
        """
        scheme_code = str(scheme_code).strip()
        logger.debug("Fetching mutual fund data for scheme: %s", scheme_code)

        try:
            response = await self._get_session().get(f"{self.base_url}/mf/{scheme_code}")
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(
                f"Failed to fetch data for scheme {scheme_code}: {exc}", symbol=scheme_code
            ) from exc

        if response.status_code == 404:
            raise SymbolNotFoundError(f"Unknown scheme {scheme_code}", symbol=scheme_code, status_code=404)
        if response.status_code != 200:
            raise UpstreamFetchError(
                f"mfapi returned {response.status_code} for scheme {scheme_code}",
                symbol=scheme_code,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamFetchError(f"Invalid payload for scheme {scheme_code}", symbol=scheme_code) from exc

        nav_data = (payload or {}).get("data") or []
        if not nav_data:
            raise SymbolNotFoundError(f"No NAV data available for scheme {scheme_code}", symbol=scheme_code)

        try:
            return self._parse_fund(scheme_code, payload.get("meta") or {}, nav_data)
        except (KeyError, TypeError, AttributeError) as exc:
            raise UpstreamFetchError(f"Malformed data for scheme {scheme_code}: {exc}", symbol=scheme_code) from exc

    def _parse_fund(self, scheme_code: str, meta: Dict[str, Any], nav_data: List[Dict[str, Any]]) -> FundNav:
        current_nav = _parse_nav(nav_data[0].get("nav"))
        if current_nav is None:
            raise UpstreamFetchError(f"Invalid latest NAV for scheme {scheme_code}", symbol=scheme_code)

        previous_nav = _parse_nav(nav_data[1].get("nav")) if len(nav_data) > 1 else None
        if previous_nav is None:
            previous_nav = current_nav

        nav_change = current_nav - previous_nav
        nav_change_pct = nav_change / previous_nav * 100 if previous_nav != 0 else Decimal("0")

        nav_date = parse_market_date(nav_data[0].get("date"))
        nav_date_estimated = nav_date is None
        if nav_date is None:
            logger.warning(
                "Could not parse NAV date %r for scheme %s; recording today as an estimate",
                nav_data[0].get("date"),
                scheme_code,
            )
            nav_date = today_ist()

        scheme_name = meta.get("scheme_name") or scheme_code

        return FundNav(
            scheme_code=str(meta.get("scheme_code") or scheme_code),
            scheme_name=scheme_name,
            fund_house=clean_fund_house(meta.get("fund_house") or ""),
            category=categorize_fund(scheme_name),
            sub_category=get_sub_category(scheme_name),
            nav=current_nav,
            previous_nav=previous_nav,
            nav_change=nav_change.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP),
            nav_change_percent=nav_change_pct.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
            nav_date=nav_date,
            nav_date_estimated=nav_date_estimated,
            last_updated=now_ist_naive(),
            nav_history=self._format_nav_history(nav_data),
        )

    def _format_nav_history(self, nav_data: List[Dict[str, Any]]) -> List[NavPoint]:
        """Valid points among the newest `history_cap` entries, oldest first."""
        history: List[NavPoint] = []
        for item in nav_data[: max(self.history_cap, 0)]:
            if not isinstance(item, dict):
                continue
            point_date = parse_market_date(item.get("date"))
            nav = _parse_nav(item.get("nav"))
            if point_date is None or nav is None:
                continue
            history.append(NavPoint(date=point_date, nav=nav))
        history.sort(key=lambda p: p.date)
        return history

    async def fetch_many(self, scheme_codes: List[str]) -> FetchResult[FundNav]:
        return await fetch_best_effort(
            [str(c).strip() for c in scheme_codes if str(c).strip()],
            self.fetch_one,
            "mutual funds",
        )
