import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, List, Optional, Union
from uuid import UUID

from fuelshare.core.exceptions import FillRejected, NotFound, Rejection, RejectionRule
from fuelshare.models.fuel_fill import FuelFill
from fuelshare.monitoring.metrics import fuel_fills_recorded
from fuelshare.repositories.base import FuelFillRepository, MeterRepository
from fuelshare.services.annual_aggregator import AnnualAggregator
from fuelshare.services.meter_ledger import as_timestamp
from fuelshare.services.rate_resolver import RateResolver, implied_rate

logger = logging.getLogger(__name__)


@dataclass
class FillWithRate:
	fill: FuelFill
	hours_since_previous: Optional[int]
	consumption_rate: Optional[float]


@dataclass
class FillRecorded:
	fill: FuelFill
	consumption_rate: Optional[float]
	# years whose price table now carries the computed rate
	updated_years: List[int]

	@property
	def rate_computed(self) -> bool:
		return self.consumption_rate is not None


class FuelFillSeries:
	def __init__(
			self,
			fills: FuelFillRepository,
			meters: MeterRepository,
			aggregator: AnnualAggregator,
			resolver: RateResolver,
			today: Callable[[], date] = date.today
	):
		self.fills = fills
		self.meters = meters
		self.aggregator = aggregator
		self.resolver = resolver
		self.today = today

	async def _meter_id(self, meter_id: Optional[UUID]) -> UUID:
		if meter_id is not None:
			if await self.meters.get(meter_id) is None:
				raise NotFound("Meter not found")
			return meter_id
		active = await self.meters.get_active_meter()
		if active is None:
			raise FillRejected(Rejection(
				RejectionRule.NO_ACTIVE_METER,
				"There is no active meter to book the fill on.",
				"meter_id",
			))
		return active.id

	async def list_with_rates(self, meter_id: Optional[UUID] = None) -> List[FillWithRate]:
		"""Fills of a meter (default: the active one), newest first, with the rate each implies"""
		meter_id = await self._meter_id(meter_id)
		fills = sorted(await self.fills.list_fills(meter_id), key=lambda f: f.filled_at)

		result = []
		previous = None
		for fill in fills:
			hours = fill.counter_reading - previous.counter_reading if previous is not None else None
			result.append(FillWithRate(fill, hours, implied_rate(previous, fill)))
			previous = fill
		result.reverse()
		return result

	async def add_fill(
			self,
			filled_at: Union[date, datetime],
			liters: float,
			price_per_liter: Union[Decimal, float],
			counter_reading: int,
			meter_id: Optional[UUID] = None
	) -> FillRecorded:
		"""Record a fill and rewrite the yearly fallback rate it implies.

		The fill and the price table upserts go through the same repositories,
		so the caller commits them together.
		"""
		filled_at = as_timestamp(filled_at)
		price_per_liter = Decimal(str(price_per_liter))
		self._check_values(liters, price_per_liter, counter_reading)
		meter_id = await self._meter_id(meter_id)

		existing = await self.fills.list_fills(meter_id)
		earlier = [f for f in existing if as_timestamp(f.filled_at) <= filled_at]
		later = [f for f in existing if as_timestamp(f.filled_at) > filled_at]
		previous = max(earlier, key=lambda f: as_timestamp(f.filled_at)) if earlier else None
		following = min(later, key=lambda f: as_timestamp(f.filled_at)) if later else None

		if previous is not None and previous.counter_reading >= counter_reading:
			self._reject(
				f"Counter reading {counter_reading} must be greater than {previous.counter_reading} "
				f"of the previous fill on {as_timestamp(previous.filled_at).date().isoformat()}."
			)
		if following is not None and following.counter_reading <= counter_reading:
			self._reject(
				f"Counter reading {counter_reading} must be less than {following.counter_reading} "
				f"of the later fill on {as_timestamp(following.filled_at).date().isoformat()}."
			)

		fill = await self.fills.add(FuelFill(
			meter_id=meter_id,
			filled_at=filled_at,
			liters=float(liters),
			price_per_liter=price_per_liter,
			counter_reading=int(counter_reading),
		))
		self.resolver.forget(meter_id)
		fuel_fills_recorded.labels(outcome="accepted").inc()

		rate = implied_rate(previous, fill)
		updated_years: List[int] = []
		if rate is not None and following is None:
			logger.info(
				f"Consumption computed: {fill.liters} L / {fill.counter_reading - previous.counter_reading} h "
				f"= {rate:.3f} L/h"
			)
			updated_years = await self.aggregator.rewrite_fallback_rates(
				from_year=filled_at.year,
				rate=rate,
				price_fallback=price_per_liter,
				until_year=self.today().year,
			)
		elif previous is None:
			logger.info(f"First fill on meter {meter_id}; fallback consumption stays in effect")

		return FillRecorded(fill=fill, consumption_rate=rate, updated_years=updated_years)

	def _check_values(self, liters, price_per_liter: Decimal, counter_reading) -> None:
		if liters is None or liters <= 0:
			self._reject("Liters must be greater than zero.", RejectionRule.NON_POSITIVE_LITERS, "liters")
		if price_per_liter <= 0:
			self._reject("The price per liter must be greater than zero.", RejectionRule.NON_POSITIVE_PRICE, "price_per_liter")
		if isinstance(counter_reading, bool) or not isinstance(counter_reading, int):
			if not (isinstance(counter_reading, float) and counter_reading.is_integer()):
				self._reject(
					"Counter readings must be whole numbers.",
					RejectionRule.NON_INTEGER_READING,
					"counter_reading",
				)
		if counter_reading < 0:
			self._reject("Counter readings cannot be negative.", RejectionRule.NEGATIVE_READING, "counter_reading")

	def _reject(
			self,
			message: str,
			rule: RejectionRule = RejectionRule.FILL_READING_NOT_INCREASING,
			field: str = "counter_reading"
	) -> None:
		fuel_fills_recorded.labels(outcome="rejected").inc()
		raise FillRejected(Rejection(rule, message, field))

	async def delete_fill(self, fill_id: UUID) -> None:
		fill = await self.fills.get(fill_id)
		if fill is None:
			raise NotFound("Fuel fill not found")
		await self.fills.delete(fill)
		self.resolver.forget(fill.meter_id)
		logger.info(f"Fuel fill {fill_id} deleted")
