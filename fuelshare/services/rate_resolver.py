"""Price and consumption rate in effect for any counter range.

A fuel fill fixes the oil price from its reading on, and the liters it took
divided by the burner-hours since the previous fill on the same meter give the
consumption rate. Both stay in effect until the next fill. Before the first
fill of a meter, and wherever a fill has no usable predecessor, the year's
price table supplies the values.
"""
import logging
from bisect import bisect_right
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from fuelshare.models.fuel_fill import FuelFill
from fuelshare.repositories.base import FuelFillRepository
from fuelshare.services.price_service import PriceService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateSegment:
	start: int
	end: int
	price_per_liter: float
	consumption_rate: float
	# None when the values come from the price table
	fill_id: Optional[UUID] = None

	@property
	def duration(self) -> int:
		return self.end - self.start

	@property
	def is_fallback(self) -> bool:
		return self.fill_id is None


def implied_rate(previous: Optional[FuelFill], fill: FuelFill) -> Optional[float]:
	"""Liters per burner-hour for the interval ending at ``fill``"""
	if previous is None:
		return None
	hours = fill.counter_reading - previous.counter_reading
	if hours <= 0:
		logger.warning(
			f"Fill {fill.id} at {fill.counter_reading} does not follow fill {previous.id} "
			f"at {previous.counter_reading}; ignoring its consumption rate"
		)
		return None
	return fill.liters / hours


class FillIndex:
	"""Fills of one meter ordered by counter reading.

	Rates are derived in fill-date order, so a fill whose predecessor by date
	has a higher reading gets no rate. Lookups by reading use binary search.
	"""

	def __init__(self, fills: Iterable[FuelFill]):
		fills = list(fills)
		rates: Dict[UUID, Optional[float]] = {}
		previous = None
		for fill in sorted(fills, key=lambda f: (f.filled_at, f.counter_reading)):
			rates[fill.id] = implied_rate(previous, fill)
			previous = fill

		self._fills = sorted(fills, key=lambda f: f.counter_reading)
		self._readings = [f.counter_reading for f in self._fills]
		self._rates = [rates[f.id] for f in self._fills]

	def __len__(self) -> int:
		return len(self._fills)

	def preceding(self, reading: int) -> int:
		"""Position of the latest fill at or before ``reading``, -1 if none"""
		return bisect_right(self._readings, reading) - 1

	def boundaries(self, start: int, end: int) -> List[int]:
		"""Readings of the fills with start < reading <= end"""
		lo = bisect_right(self._readings, start)
		hi = bisect_right(self._readings, end)
		return self._readings[lo:hi]

	def fill_at(self, position: int) -> FuelFill:
		return self._fills[position]

	def rate_at(self, position: int) -> Optional[float]:
		return self._rates[position]


def resolve_segments(
		index: FillIndex,
		counter_start: int,
		counter_end: int,
		fallback_price: float,
		fallback_rate: float
) -> List[RateSegment]:
	"""Split [counter_start, counter_end] at every fill inside it and price each piece"""
	if counter_end <= counter_start:
		return []

	cuts = [counter_start] + index.boundaries(counter_start, counter_end)
	if cuts[-1] != counter_end:
		cuts.append(counter_end)

	segments = []
	for a, b in zip(cuts, cuts[1:]):
		position = index.preceding(a)
		if position < 0:
			segments.append(RateSegment(a, b, fallback_price, fallback_rate))
			continue

		fill = index.fill_at(position)
		rate = index.rate_at(position)
		segments.append(RateSegment(
			start=a,
			end=b,
			price_per_liter=float(fill.price_per_liter),
			consumption_rate=rate if rate is not None else fallback_rate,
			fill_id=fill.id,
		))
	return segments


class RateResolver:
	def __init__(self, fills: FuelFillRepository, price_service: PriceService):
		self.fills = fills
		self.price_service = price_service
		self._indexes: Dict[Optional[UUID], FillIndex] = {}

	async def fill_index(self, meter_id: Optional[UUID]) -> FillIndex:
		if meter_id not in self._indexes:
			fills = await self.fills.list_fills(meter_id) if meter_id is not None else []
			self._indexes[meter_id] = FillIndex(fills)
		return self._indexes[meter_id]

	def forget(self, meter_id: Optional[UUID] = None) -> None:
		"""Drop loaded fill series, e.g. after a fill was added"""
		if meter_id is None:
			self._indexes.clear()
		else:
			self._indexes.pop(meter_id, None)

	async def resolve(
			self,
			meter_id: Optional[UUID],
			counter_start: int,
			counter_end: int,
			year: Optional[int] = None
	) -> List[RateSegment]:
		table = await self.price_service.get_price_table(year or date.today().year)
		index = await self.fill_index(meter_id)
		return resolve_segments(
			index,
			counter_start,
			counter_end,
			fallback_price=float(table.price_per_liter),
			fallback_rate=table.consumption_rate,
		)
