"""In-memory repositories with the behaviour of the SQL ones, for service and API tests."""
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from fuelshare.config import settings
from fuelshare.models import AnnualClosing, FuelFill, Meter, PriceTable, Stay, User
from fuelshare.models.base import utcnow
from fuelshare.repositories.base import Repositories

TODAY = date(2024, 6, 15)


def utc(year: int, month: int, day: int) -> datetime:
	return datetime(year, month, day, 12, 0, tzinfo=timezone.utc)


def stamp(obj):
	"""Fill what a flush would: id, timestamps and scalar column defaults"""
	if obj.id is None:
		obj.id = uuid.uuid4()
	now = utcnow()
	if obj.created_at is None:
		obj.created_at = now
	if obj.updated_at is None:
		obj.updated_at = now
	for column in obj.__table__.columns:
		default = column.default
		if default is not None and default.is_scalar and getattr(obj, column.key) is None:
			setattr(obj, column.key, default.arg)
	return obj


class _Store:
	def __init__(self):
		self.items: Dict[UUID, Any] = {}

	async def get(self, item_id: UUID):
		return self.items.get(item_id)

	async def add(self, item):
		stamp(item)
		self.items[item.id] = item
		return item

	async def delete(self, item) -> None:
		self.items.pop(item.id, None)


class FakeMeterRepository(_Store):
	def __init__(self, store: "FakeStore"):
		super().__init__()
		self.store = store

	async def get_active_meter(self) -> Optional[Meter]:
		active = [m for m in self.items.values() if m.is_active]
		return max(active, key=lambda m: m.installed_at) if active else None

	async def list_meters(self) -> List[Meter]:
		return sorted(self.items.values(), key=lambda m: m.installed_at, reverse=True)

	async def count_references(self, meter_id: UUID) -> int:
		fills = [f for f in self.store.fills.items.values() if f.meter_id == meter_id]
		stays = [
			s for s in self.store.stays.items.values()
			if s.arrival_meter_id == meter_id or s.departure_meter_id == meter_id
		]
		return len(fills) + len(stays)

	async def last_observed_reading(self, meter_id: UUID) -> Optional[int]:
		readings = [f.counter_reading for f in self.store.fills.items.values() if f.meter_id == meter_id]
		readings += [s.departure_reading for s in self.store.stays.items.values() if s.departure_meter_id == meter_id]
		return max(readings) if readings else None


class FakeFuelFillRepository(_Store):
	async def list_fills(self, meter_id: UUID) -> List[FuelFill]:
		fills = [f for f in self.items.values() if f.meter_id == meter_id]
		return sorted(fills, key=lambda f: f.counter_reading)

	async def list_all_fills(self, year: Optional[int] = None) -> List[FuelFill]:
		fills = [f for f in self.items.values() if year is None or f.filled_at.year == year]
		return sorted(fills, key=lambda f: f.filled_at)


class FakeStayRepository(_Store):
	async def list_stays_for_user(self, user_id: UUID, exclude_id: Optional[UUID] = None) -> List[Stay]:
		stays = [s for s in self.items.values() if s.user_id == user_id and s.id != exclude_id]
		return sorted(stays, key=lambda s: s.departure_reading, reverse=True)

	async def list_all_stays(self, year: Optional[int] = None, exclude_id: Optional[UUID] = None) -> List[Stay]:
		stays = [
			s for s in self.items.values()
			if (year is None or s.year == year) and s.id != exclude_id
		]
		return sorted(stays, key=lambda s: s.arrival)

	async def list_departing_on_meter(self, meter_id: UUID, since: date) -> List[Stay]:
		return [s for s in self.items.values() if s.departure_meter_id == meter_id and s.departure >= since]


class FakePriceTableRepository:
	def __init__(self):
		self.tables: Dict[int, PriceTable] = {}

	async def get_price_table(self, year: int) -> Optional[PriceTable]:
		return self.tables.get(year)

	async def list_price_tables(self) -> List[PriceTable]:
		return sorted(self.tables.values(), key=lambda t: t.year, reverse=True)

	async def upsert_yearly_rate(self, year: int, rate: float, price_fallback: Any) -> None:
		table = self.tables.get(year)
		if table is None:
			await self.add(PriceTable(
				year=year,
				member_rate=Decimal(str(settings.DEFAULT_MEMBER_RATE)),
				guest_rate=Decimal(str(settings.DEFAULT_GUEST_RATE)),
				price_per_liter=Decimal(str(price_fallback)),
				consumption_rate=rate,
				is_computed=True,
			))
		else:
			table.consumption_rate = rate
			table.is_computed = True
			table.updated_at = utcnow()

	async def add(self, table: PriceTable) -> PriceTable:
		stamp(table)
		self.tables[table.year] = table
		return table


class FakeAnnualClosingRepository:
	def __init__(self):
		self.closings: Dict[int, AnnualClosing] = {}

	async def get(self, year: int) -> Optional[AnnualClosing]:
		return self.closings.get(year)

	async def add(self, closing: AnnualClosing) -> AnnualClosing:
		stamp(closing)
		self.closings[closing.year] = closing
		return closing


class FakeUserRepository(_Store):
	async def get_by_username(self, username: str) -> Optional[User]:
		return next((u for u in self.items.values() if u.username == username), None)


class FakeUnitOfWork:
	def __init__(self):
		self.commits = 0
		self.rollbacks = 0

	async def commit(self) -> None:
		self.commits += 1

	async def rollback(self) -> None:
		self.rollbacks += 1


class FakeStore:
	"""Holds every fake repository so they can see each other's rows"""

	def __init__(self):
		self.meters = FakeMeterRepository(self)
		self.fills = FakeFuelFillRepository()
		self.stays = FakeStayRepository()
		self.prices = FakePriceTableRepository()
		self.closings = FakeAnnualClosingRepository()
		self.users = FakeUserRepository()
		self.uow = FakeUnitOfWork()

	def repositories(self) -> Repositories:
		return Repositories(
			meters=self.meters,
			fills=self.fills,
			stays=self.stays,
			prices=self.prices,
			closings=self.closings,
			users=self.users,
			uow=self.uow,
		)


def fill(meter: Meter, filled_at, liters: float, price, reading: int) -> FuelFill:
	return FuelFill(
		meter_id=meter.id,
		filled_at=filled_at,
		liters=liters,
		price_per_liter=Decimal(str(price)),
		counter_reading=reading,
	)


def stay(user: User, arrival: date, departure: date, start: int, end: int, meter: Optional[Meter] = None, **kwargs) -> Stay:
	meter_id = meter.id if meter is not None else None
	values = dict(
		user_id=user.id,
		arrival=arrival,
		departure=departure,
		arrival_reading=start,
		departure_reading=end,
		members=kwargs.pop("members", 1),
		guests=kwargs.pop("guests", 0),
		year=arrival.year,
		arrival_meter_id=meter_id,
		departure_meter_id=meter_id,
		needs_meter_review=False,
	)
	values.update(kwargs)
	return Stay(**values)
