import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from fuelshare.config import settings
from fuelshare.core.exceptions import AnnualClosingExists
from fuelshare.models.annual_closing import AnnualClosing
from fuelshare.repositories.base import Repositories
from fuelshare.services.cost_allocation import CostAllocationEngine, StayCost, round_money
from fuelshare.services.price_service import PriceService

logger = logging.getLogger(__name__)


def is_year_closed(year: int, today: date, closing_month: int = None) -> bool:
	"""A year is closed for regular users from ``closing_month`` of the following year on"""
	closing_month = closing_month or settings.YEAR_CLOSING_MONTH
	if year >= today.year:
		return False
	if year == today.year - 1:
		return today.month >= closing_month
	return True


def can_edit_year(year: int, is_admin: bool, today: date) -> bool:
	return is_admin or not is_year_closed(year, today)


@dataclass
class YearSummary:
	year: int
	burner_hours: int = 0
	fuel_cost: Decimal = Decimal("0.00")
	lodging_cost: Decimal = Decimal("0.00")
	total_cost: Decimal = Decimal("0.00")
	stay_count: int = 0
	fill_count: int = 0
	consumption_rate: float = 0.0
	rate_is_computed: bool = False
	monthly_hours: List[int] = field(default_factory=lambda: [0] * 12)
	cost_per_user: Dict[str, Decimal] = field(default_factory=dict)
	stays: List[StayCost] = field(default_factory=list)
	closed: bool = False


class AnnualAggregator:
	def __init__(
			self,
			repos: Repositories,
			engine: CostAllocationEngine,
			price_service: PriceService,
			today: Callable[[], date] = date.today
	):
		self.repos = repos
		self.engine = engine
		self.price_service = price_service
		self.today = today

	async def rewrite_fallback_rates(
			self,
			from_year: int,
			rate: float,
			price_fallback: Any,
			until_year: Optional[int] = None
	) -> List[int]:
		"""Store a computed consumption rate for every year from ``from_year`` up to ``until_year``"""
		until_year = until_year or self.today().year
		years = list(range(from_year, max(from_year, until_year) + 1))
		for year in years:
			await self.repos.prices.upsert_yearly_rate(year, rate, price_fallback)
		logger.info(f"Consumption rate {rate:.3f} L/h stored for {years[0]}-{years[-1]}")
		return years

	async def summarize_year(self, year: int, user_id: Optional[UUID] = None) -> YearSummary:
		"""Per-stay costs of a year rolled up into totals"""
		stays = await self.repos.stays.list_all_stays(year=year)
		if user_id is not None:
			stays = [s for s in stays if s.user_id == user_id]

		table = await self.price_service.get_price_table(year)
		fills = await self.repos.fills.list_all_fills(year=year)
		summary = YearSummary(
			year=year,
			stay_count=len(stays),
			fill_count=len(fills),
			consumption_rate=table.consumption_rate,
			rate_is_computed=table.is_computed,
			closed=await self.repos.closings.get(year) is not None,
		)

		users: Dict[UUID, Any] = {}
		fuel_total = Decimal("0")
		lodging_total = Decimal("0")
		for stay in stays:
			if stay.user_id not in users:
				users[stay.user_id] = await self.repos.users.get(stay.user_id)
			user = users[stay.user_id]

			cost = await self.engine.stay_cost(stay, user_exempt=bool(user and user.is_exempt))
			summary.stays.append(cost)
			summary.burner_hours += cost.burner_hours
			summary.monthly_hours[stay.arrival.month - 1] += cost.burner_hours
			fuel_total += cost.fuel_cost
			lodging_total += cost.lodging_cost

			name = user.username if user is not None else str(stay.user_id)
			summary.cost_per_user[name] = summary.cost_per_user.get(name, Decimal("0.00")) + cost.total_cost

		summary.fuel_cost = round_money(fuel_total)
		summary.lodging_cost = round_money(lodging_total)
		summary.total_cost = summary.fuel_cost + summary.lodging_cost
		return summary

	async def get_closing(self, year: int) -> Optional[AnnualClosing]:
		return await self.repos.closings.get(year)

	async def close_year(self, year: int) -> AnnualClosing:
		"""Freeze the totals of a year; a closing is never recomputed"""
		if await self.repos.closings.get(year) is not None:
			raise AnnualClosingExists(f"Year {year} is already closed")

		summary = await self.summarize_year(year)
		closing = AnnualClosing(
			year=year,
			counter_delta=summary.burner_hours,
			total_cost=summary.total_cost,
			fuel_cost=summary.fuel_cost,
			lodging_cost=summary.lodging_cost,
			stay_count=summary.stay_count,
			consumption_rate=summary.consumption_rate,
			closed_at=datetime.now(timezone.utc),
		)
		await self.repos.closings.add(closing)
		logger.info(f"Year {year} closed: {summary.stay_count} stays, total {summary.total_cost}")
		return closing
