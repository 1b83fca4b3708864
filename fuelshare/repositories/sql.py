import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional, Any
from uuid import UUID

from sqlalchemy import select, func, extract
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from fuelshare.config import settings
from fuelshare.models.annual_closing import AnnualClosing
from fuelshare.models.fuel_fill import FuelFill
from fuelshare.models.meter import Meter
from fuelshare.models.price_table import PriceTable
from fuelshare.models.stay import Stay
from fuelshare.models.user import User
from fuelshare.repositories.base import Repositories

logger = logging.getLogger(__name__)


class SqlMeterRepository:
	def __init__(self, session: AsyncSession):
		self.session = session

	async def get(self, meter_id: UUID) -> Optional[Meter]:
		return await self.session.get(Meter, meter_id)

	async def get_active_meter(self) -> Optional[Meter]:
		result = await self.session.execute(
			select(Meter).where(Meter.is_active.is_(True)).order_by(Meter.installed_at.desc()).limit(1)
		)
		return result.scalar_one_or_none()

	async def list_meters(self) -> List[Meter]:
		result = await self.session.execute(select(Meter).order_by(Meter.installed_at.desc()))
		return list(result.scalars().all())

	async def add(self, meter: Meter) -> Meter:
		self.session.add(meter)
		await self.session.flush()
		return meter

	async def delete(self, meter: Meter) -> None:
		await self.session.delete(meter)
		await self.session.flush()

	async def count_references(self, meter_id: UUID) -> int:
		fills = await self.session.scalar(
			select(func.count()).select_from(FuelFill).where(FuelFill.meter_id == meter_id)
		)
		stays = await self.session.scalar(
			select(func.count()).select_from(Stay).where(
				(Stay.arrival_meter_id == meter_id) | (Stay.departure_meter_id == meter_id)
			)
		)
		return (fills or 0) + (stays or 0)

	async def last_observed_reading(self, meter_id: UUID) -> Optional[int]:
		last_fill = await self.session.scalar(
			select(func.max(FuelFill.counter_reading)).where(FuelFill.meter_id == meter_id)
		)
		last_stay = await self.session.scalar(
			select(func.max(Stay.departure_reading)).where(Stay.departure_meter_id == meter_id)
		)
		observed = [r for r in (last_fill, last_stay) if r is not None]
		return max(observed) if observed else None


class SqlFuelFillRepository:
	def __init__(self, session: AsyncSession):
		self.session = session

	async def get(self, fill_id: UUID) -> Optional[FuelFill]:
		return await self.session.get(FuelFill, fill_id)

	async def list_fills(self, meter_id: UUID) -> List[FuelFill]:
		result = await self.session.execute(
			select(FuelFill).where(FuelFill.meter_id == meter_id).order_by(FuelFill.counter_reading.asc())
		)
		return list(result.scalars().all())

	async def list_all_fills(self, year: Optional[int] = None) -> List[FuelFill]:
		query = select(FuelFill)
		if year is not None:
			query = query.where(extract("year", FuelFill.filled_at) == year)
		result = await self.session.execute(query.order_by(FuelFill.filled_at.asc()))
		return list(result.scalars().all())

	async def add(self, fill: FuelFill) -> FuelFill:
		self.session.add(fill)
		await self.session.flush()
		return fill

	async def delete(self, fill: FuelFill) -> None:
		await self.session.delete(fill)
		await self.session.flush()


class SqlStayRepository:
	def __init__(self, session: AsyncSession):
		self.session = session

	async def get(self, stay_id: UUID) -> Optional[Stay]:
		return await self.session.get(Stay, stay_id)

	async def list_stays_for_user(self, user_id: UUID, exclude_id: Optional[UUID] = None) -> List[Stay]:
		query = select(Stay).where(Stay.user_id == user_id)
		if exclude_id is not None:
			query = query.where(Stay.id != exclude_id)
		result = await self.session.execute(query.order_by(Stay.departure_reading.desc()))
		return list(result.scalars().all())

	async def list_all_stays(
			self,
			year: Optional[int] = None,
			exclude_id: Optional[UUID] = None
	) -> List[Stay]:
		query = select(Stay)
		if year is not None:
			query = query.where(Stay.year == year)
		if exclude_id is not None:
			query = query.where(Stay.id != exclude_id)
		result = await self.session.execute(query.order_by(Stay.arrival.asc()))
		return list(result.scalars().all())

	async def list_departing_on_meter(self, meter_id: UUID, since: date) -> List[Stay]:
		result = await self.session.execute(
			select(Stay).where(Stay.departure_meter_id == meter_id, Stay.departure >= since)
		)
		return list(result.scalars().all())

	async def add(self, stay: Stay) -> Stay:
		self.session.add(stay)
		await self.session.flush()
		return stay

	async def delete(self, stay: Stay) -> None:
		await self.session.delete(stay)
		await self.session.flush()


class SqlPriceTableRepository:
	def __init__(self, session: AsyncSession):
		self.session = session

	async def get_price_table(self, year: int) -> Optional[PriceTable]:
		result = await self.session.execute(select(PriceTable).where(PriceTable.year == year))
		return result.scalar_one_or_none()

	async def list_price_tables(self) -> List[PriceTable]:
		result = await self.session.execute(select(PriceTable).order_by(PriceTable.year.desc()))
		return list(result.scalars().all())

	async def upsert_yearly_rate(self, year: int, rate: float, price_fallback: Any) -> None:
		now = datetime.now(timezone.utc)
		statement = insert(PriceTable).values(
			year=year,
			member_rate=Decimal(str(settings.DEFAULT_MEMBER_RATE)),
			guest_rate=Decimal(str(settings.DEFAULT_GUEST_RATE)),
			price_per_liter=Decimal(str(price_fallback)),
			consumption_rate=rate,
			is_computed=True,
			created_at=now,
			updated_at=now,
		)
		statement = statement.on_conflict_do_update(
			index_elements=[PriceTable.year],
			set_={"consumption_rate": rate, "is_computed": True, "updated_at": now},
		)
		await self.session.execute(statement)
		# a row of this year loaded earlier in the session is stale now
		for loaded in list(self.session.identity_map.values()):
			if isinstance(loaded, PriceTable) and loaded.year == year:
				await self.session.refresh(loaded)

	async def add(self, table: PriceTable) -> PriceTable:
		self.session.add(table)
		await self.session.flush()
		return table


class SqlAnnualClosingRepository:
	def __init__(self, session: AsyncSession):
		self.session = session

	async def get(self, year: int) -> Optional[AnnualClosing]:
		result = await self.session.execute(select(AnnualClosing).where(AnnualClosing.year == year))
		return result.scalar_one_or_none()

	async def add(self, closing: AnnualClosing) -> AnnualClosing:
		self.session.add(closing)
		await self.session.flush()
		return closing


class SqlUserRepository:
	def __init__(self, session: AsyncSession):
		self.session = session

	async def get(self, user_id: UUID) -> Optional[User]:
		return await self.session.get(User, user_id)

	async def get_by_username(self, username: str) -> Optional[User]:
		result = await self.session.execute(select(User).where(User.username == username))
		return result.scalar_one_or_none()


def build_repositories(session: AsyncSession) -> Repositories:
	return Repositories(
		meters=SqlMeterRepository(session),
		fills=SqlFuelFillRepository(session),
		stays=SqlStayRepository(session),
		prices=SqlPriceTableRepository(session),
		closings=SqlAnnualClosingRepository(session),
		users=SqlUserRepository(session),
		uow=session,
	)
