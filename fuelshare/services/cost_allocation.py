import logging
import math
import warnings
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Union
from uuid import UUID

from fuelshare.core.exceptions import DataIntegrityWarning
from fuelshare.models.stay import Stay
from fuelshare.monitoring.metrics import fuel_cost_computations, data_integrity_warnings
from fuelshare.repositories.base import MeterRepository
from fuelshare.services.price_service import PriceService
from fuelshare.services.rate_resolver import RateResolver, RateSegment

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def round_money(value: Union[float, Decimal]) -> Decimal:
	"""Round to cents, half up. Floats go through their shortest repr."""
	if not isinstance(value, Decimal):
		value = Decimal(repr(float(value)))
	return value.quantize(CENT, rounding=ROUND_HALF_UP)


def sum_fuel_cost(segments: List[RateSegment]) -> Decimal:
	# Only the sum is rounded; segments keep full precision
	total = sum(s.duration * s.consumption_rate * s.price_per_liter for s in segments)
	return round_money(total)


def count_nights(arrival: Union[date, datetime], departure: Union[date, datetime]) -> int:
	return math.ceil((departure - arrival) / timedelta(days=1))


def allocate_lodging_cost(
		nights: int,
		members: int,
		guests: int,
		member_rate: Union[Decimal, float],
		guest_rate: Union[Decimal, float]
) -> Decimal:
	member_rate = Decimal(str(member_rate))
	guest_rate = Decimal(str(guest_rate))
	return round_money(nights * (members * member_rate + guests * guest_rate))


def resolve_skip_lodging(stay_flag: Optional[bool], user_exempt: bool) -> bool:
	"""A per-stay flag wins; otherwise exempt users pay no lodging"""
	if stay_flag is not None:
		return stay_flag
	return bool(user_exempt)


@dataclass
class StayCost:
	stay_id: Optional[UUID]
	nights: int
	burner_hours: int
	fuel_cost: Decimal
	lodging_cost: Decimal
	total_cost: Decimal
	lodging_skipped: bool
	segments: List[RateSegment] = field(default_factory=list)
	warnings: List[str] = field(default_factory=list)


class CostAllocationEngine:
	"""Turns counter ranges into money. Reads the fill and price series, writes nothing."""

	def __init__(self, resolver: RateResolver, price_service: PriceService, meters: MeterRepository):
		self.resolver = resolver
		self.price_service = price_service
		self.meters = meters

	async def allocate_fuel_cost(
			self,
			counter_start: int,
			counter_end: int,
			meter_id: Optional[UUID],
			year: Optional[int] = None
	) -> Decimal:
		if counter_end <= counter_start:
			logger.warning(f"Invalid counter range {counter_start}-{counter_end}, fuel cost is 0")
			return round_money(Decimal(0))
		segments = await self.resolver.resolve(meter_id, counter_start, counter_end, year)
		fuel_cost_computations.inc()
		return sum_fuel_cost(segments)

	async def stay_segments(self, stay: Stay) -> tuple:
		"""Priced segments of a stay and the integrity warnings raised on the way"""
		notes: List[str] = []
		start, end = stay.arrival_reading, stay.departure_reading
		arrival_meter = stay.arrival_meter_id
		departure_meter = stay.departure_meter_id

		if arrival_meter is not None and (stay.needs_meter_review or departure_meter is None):
			notes.append(
				f"Departure meter of stay {stay.id} awaits correction; "
				f"pricing {start}-{end} on the arrival meter"
			)
			segments = await self.resolver.resolve(arrival_meter, start, end, stay.year)
		elif arrival_meter is not None and departure_meter is not None and arrival_meter != departure_meter:
			meter = await self.meters.get(arrival_meter)
			carryover = meter.carryover_reading if meter is not None else None
			if carryover is None or carryover < start:
				notes.append(
					f"Stay {stay.id} spans a meter swap without a usable carry-over reading; "
					f"pricing {start}-{end} on the arrival meter"
				)
				segments = await self.resolver.resolve(arrival_meter, start, end, stay.year)
			else:
				notes.append(f"Stay {stay.id} spans a meter swap; split at carry-over reading {carryover}")
				segments = await self.resolver.resolve(arrival_meter, start, carryover, stay.year)
				segments += await self.resolver.resolve(departure_meter, 0, end, stay.year)
		else:
			segments = await self.resolver.resolve(departure_meter or arrival_meter, start, end, stay.year)

		if not segments and end <= start:
			notes.append(f"Stay {stay.id} has no positive counter range; no fuel charged")

		for message in notes:
			data_integrity_warnings.inc()
			logger.warning(message)
			warnings.warn(message, DataIntegrityWarning, stacklevel=2)
		return segments, notes

	async def stay_cost(self, stay: Stay, user_exempt: bool = False) -> StayCost:
		segments, notes = await self.stay_segments(stay)
		fuel_cost = sum_fuel_cost(segments)
		fuel_cost_computations.inc()

		nights = count_nights(stay.arrival, stay.departure)
		skip_lodging = resolve_skip_lodging(stay.skip_lodging, user_exempt)
		if skip_lodging:
			lodging_cost = round_money(Decimal(0))
		else:
			table = await self.price_service.get_price_table(stay.year)
			lodging_cost = allocate_lodging_cost(
				nights, stay.members, stay.guests, table.member_rate, table.guest_rate
			)

		return StayCost(
			stay_id=stay.id,
			nights=nights,
			burner_hours=sum(s.duration for s in segments),
			fuel_cost=fuel_cost,
			lodging_cost=lodging_cost,
			total_cost=fuel_cost + lodging_cost,
			lodging_skipped=skip_lodging,
			segments=segments,
			warnings=notes,
		)
