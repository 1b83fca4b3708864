import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import List, Optional, Union
from uuid import UUID

from fuelshare.core.exceptions import MeterConflict, NotFound
from fuelshare.models.meter import Meter
from fuelshare.models.stay import Stay
from fuelshare.monitoring.metrics import meter_swaps
from fuelshare.repositories.base import MeterRepository, StayRepository

logger = logging.getLogger(__name__)


def as_timestamp(value: Union[date, datetime]) -> datetime:
	"""Bare dates are taken at noon UTC so the calendar day survives any timezone"""
	if isinstance(value, datetime):
		return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
	return datetime.combine(value, time(12, 0), tzinfo=timezone.utc)


@dataclass
class MeterSwap:
	meter: Meter
	retired: Optional[Meter] = None
	# stays whose departure reading belongs to the retired meter and need an administrator
	flagged_stays: List[Stay] = field(default_factory=list)


class MeterLedger:
	def __init__(self, meters: MeterRepository, stays: StayRepository):
		self.meters = meters
		self.stays = stays

	async def get_active_meter(self) -> Optional[Meter]:
		return await self.meters.get_active_meter()

	async def list_meters(self) -> List[Meter]:
		return await self.meters.list_meters()

	async def get_meter(self, meter_id: UUID) -> Meter:
		meter = await self.meters.get(meter_id)
		if meter is None:
			raise NotFound("Meter not found")
		return meter

	async def install_meter(
			self,
			installed_at: Union[date, datetime],
			notes: Optional[str] = None,
			replace_active: bool = False,
			outgoing_last_reading: Optional[int] = None
	) -> MeterSwap:
		"""Install a meter; with ``replace_active`` the current one is retired first"""
		installed_at = as_timestamp(installed_at)
		active = await self.meters.get_active_meter()

		if active is not None and not replace_active:
			raise MeterConflict("An active meter already exists; set replace_active to replace it")

		swap = MeterSwap(meter=None)
		if active is not None:
			if installed_at <= as_timestamp(active.installed_at):
				raise MeterConflict("The new meter must be installed after the active one")
			swap.retired = await self._retire(active, installed_at, outgoing_last_reading)
			swap.flagged_stays = await self._flag_straddling_stays(active, installed_at)

		meter = Meter(
			installed_at=installed_at,
			is_active=True,
			carryover_reading=None,
			notes=notes,
		)
		swap.meter = await self.meters.add(meter)

		if swap.retired is not None:
			meter_swaps.inc()
			logger.info(
				f"Meter {swap.retired.id} replaced by {meter.id} at {installed_at.isoformat()}, "
				f"carry-over {swap.retired.carryover_reading}, {len(swap.flagged_stays)} stays flagged"
			)
		else:
			logger.info(f"Meter {meter.id} installed at {installed_at.isoformat()}")
		return swap

	async def _retire(self, meter: Meter, removed_at: datetime, last_reading: Optional[int]) -> Meter:
		observed = await self.meters.last_observed_reading(meter.id)
		if last_reading is None:
			last_reading = observed if observed is not None else 0
		elif observed is not None and last_reading < observed:
			logger.warning(
				f"Carry-over {last_reading} of meter {meter.id} is below its last observed reading {observed}"
			)

		meter.is_active = False
		meter.removed_at = removed_at
		meter.carryover_reading = last_reading
		return meter

	async def _flag_straddling_stays(self, meter: Meter, swapped_at: datetime) -> List[Stay]:
		stays = await self.stays.list_departing_on_meter(meter.id, swapped_at.date())
		for stay in stays:
			stay.departure_meter_id = None
			stay.needs_meter_review = True
			logger.warning(
				f"Stay {stay.id} departs on {stay.departure.isoformat()} after the swap of meter {meter.id}; "
				f"flagged for correction"
			)
		return stays

	async def update_meter(
			self,
			meter_id: UUID,
			notes: Optional[str] = None,
			installed_at: Optional[Union[date, datetime]] = None,
			removed_at: Optional[Union[date, datetime]] = None,
			carryover_reading: Optional[int] = None
	) -> Meter:
		meter = await self.get_meter(meter_id)
		if notes is not None:
			meter.notes = notes
		if installed_at is not None:
			meter.installed_at = as_timestamp(installed_at)
		if removed_at is not None:
			if meter.is_active:
				raise MeterConflict("The active meter has no removal date")
			meter.removed_at = as_timestamp(removed_at)
		if carryover_reading is not None:
			if meter.is_active:
				raise MeterConflict("The active meter has no carry-over reading")
			meter.carryover_reading = carryover_reading
		return meter

	async def delete_meter(self, meter_id: UUID) -> None:
		meter = await self.get_meter(meter_id)
		if meter.is_active:
			raise MeterConflict("The active meter cannot be deleted")
		if await self.meters.count_references(meter.id) > 0:
			raise MeterConflict("Meter still has fuel fills or stays assigned and cannot be deleted")
		await self.meters.delete(meter)
		logger.info(f"Meter {meter_id} deleted")
