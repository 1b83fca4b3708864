"""Narrow persistence capabilities the services depend on.

Each service receives only the repositories it needs. The SQLAlchemy
implementations live in ``fuelshare.repositories.sql``; any object with the
same coroutine methods can stand in for them.
"""
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Protocol, Any
from uuid import UUID

from fuelshare.models.annual_closing import AnnualClosing
from fuelshare.models.fuel_fill import FuelFill
from fuelshare.models.meter import Meter
from fuelshare.models.price_table import PriceTable
from fuelshare.models.stay import Stay
from fuelshare.models.user import User


class MeterRepository(Protocol):
	async def get(self, meter_id: UUID) -> Optional[Meter]: ...

	async def get_active_meter(self) -> Optional[Meter]: ...

	async def list_meters(self) -> List[Meter]: ...

	async def add(self, meter: Meter) -> Meter: ...

	async def delete(self, meter: Meter) -> None: ...

	async def count_references(self, meter_id: UUID) -> int: ...

	async def last_observed_reading(self, meter_id: UUID) -> Optional[int]: ...


class FuelFillRepository(Protocol):
	async def get(self, fill_id: UUID) -> Optional[FuelFill]: ...

	async def list_fills(self, meter_id: UUID) -> List[FuelFill]:
		"""Fills of one meter, ascending by counter reading"""
		...

	async def list_all_fills(self, year: Optional[int] = None) -> List[FuelFill]: ...

	async def add(self, fill: FuelFill) -> FuelFill: ...

	async def delete(self, fill: FuelFill) -> None: ...


class StayRepository(Protocol):
	async def get(self, stay_id: UUID) -> Optional[Stay]: ...

	async def list_stays_for_user(self, user_id: UUID, exclude_id: Optional[UUID] = None) -> List[Stay]: ...

	async def list_all_stays(
			self,
			year: Optional[int] = None,
			exclude_id: Optional[UUID] = None
	) -> List[Stay]: ...

	async def list_departing_on_meter(self, meter_id: UUID, since: date) -> List[Stay]: ...

	async def add(self, stay: Stay) -> Stay: ...

	async def delete(self, stay: Stay) -> None: ...


class PriceTableRepository(Protocol):
	async def get_price_table(self, year: int) -> Optional[PriceTable]: ...

	async def list_price_tables(self) -> List[PriceTable]: ...

	async def upsert_yearly_rate(self, year: int, rate: float, price_fallback: Any) -> None: ...

	async def add(self, table: PriceTable) -> PriceTable: ...


class AnnualClosingRepository(Protocol):
	async def get(self, year: int) -> Optional[AnnualClosing]: ...

	async def add(self, closing: AnnualClosing) -> AnnualClosing: ...


class UserRepository(Protocol):
	async def get(self, user_id: UUID) -> Optional[User]: ...

	async def get_by_username(self, username: str) -> Optional[User]: ...


class UnitOfWork(Protocol):
	async def commit(self) -> None: ...

	async def rollback(self) -> None: ...


@dataclass
class Repositories:
	"""All repositories of one request, sharing a single transaction"""

	meters: MeterRepository
	fills: FuelFillRepository
	stays: StayRepository
	prices: PriceTableRepository
	closings: AnnualClosingRepository
	users: UserRepository
	uow: UnitOfWork

	async def commit(self) -> None:
		await self.uow.commit()

	async def rollback(self) -> None:
		await self.uow.rollback()
