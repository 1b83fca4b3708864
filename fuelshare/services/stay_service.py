import logging
from datetime import date
from typing import Callable, List, Optional
from uuid import UUID

from fuelshare.core.exceptions import NotFound, PermissionDenied, YearClosed
from fuelshare.models.stay import Stay
from fuelshare.models.user import User, UserRole
from fuelshare.repositories.base import Repositories
from fuelshare.schemas.stay import StayCreate, StayUpdate
from fuelshare.services.annual_aggregator import can_edit_year
from fuelshare.services.cost_allocation import CostAllocationEngine, StayCost
from fuelshare.services.meter_ledger import MeterLedger
from fuelshare.services.stay_validator import StayCandidate, StayValidator, find_overlapping_stays

logger = logging.getLogger(__name__)


def is_admin(user: User) -> bool:
	return user.role == UserRole.ADMIN


class StayService:
	def __init__(
			self,
			repos: Repositories,
			validator: StayValidator,
			ledger: MeterLedger,
			engine: CostAllocationEngine,
			today: Callable[[], date] = date.today
	):
		self.repos = repos
		self.validator = validator
		self.ledger = ledger
		self.engine = engine
		self.today = today

	async def get_stay(self, stay_id: UUID, current_user: User) -> Stay:
		stay = await self.repos.stays.get(stay_id)
		if stay is None:
			raise NotFound("Stay not found")
		if not is_admin(current_user) and stay.user_id != current_user.id:
			raise PermissionDenied("Not allowed to access this stay")
		return stay

	async def list_stays(self, current_user: User, year: Optional[int] = None) -> List[Stay]:
		if is_admin(current_user):
			stays = await self.repos.stays.list_all_stays(year=year)
		else:
			stays = await self.repos.stays.list_stays_for_user(current_user.id)
			if year is not None:
				stays = [s for s in stays if s.year == year]
		return sorted(stays, key=lambda s: s.arrival, reverse=True)

	async def create_stay(self, data: StayCreate, current_user: User) -> Stay:
		user_id = current_user.id
		if data.user_id is not None and data.user_id != current_user.id:
			if not is_admin(current_user):
				raise PermissionDenied("Only administrators can record stays for other users")
			if await self.repos.users.get(data.user_id) is None:
				raise NotFound("User not found")
			user_id = data.user_id

		meter = await self.ledger.get_active_meter()
		meter_id = meter.id if meter is not None else None
		result = await self.validator.validate(StayCandidate(
			user_id=user_id,
			arrival=data.arrival,
			departure=data.departure,
			arrival_reading=data.arrival_reading,
			departure_reading=data.departure_reading,
			members=data.members,
			guests=data.guests,
			meter_id=meter_id,
		))
		result.raise_for_rejection()
		parsed = result.parsed

		stay = await self.repos.stays.add(Stay(
			user_id=user_id,
			arrival=parsed.arrival,
			departure=parsed.departure,
			arrival_reading=parsed.arrival_reading,
			departure_reading=parsed.departure_reading,
			members=data.members,
			guests=data.guests,
			year=parsed.arrival.year,
			arrival_meter_id=meter_id,
			departure_meter_id=meter_id,
			needs_meter_review=False,
			skip_lodging=data.skip_lodging,
		))
		logger.info(f"Stay {stay.id} recorded for user {user_id}: {parsed.arrival_reading}-{parsed.departure_reading}")
		return stay

	async def update_stay(self, stay_id: UUID, data: StayUpdate, current_user: User) -> Stay:
		stay = await self.get_stay(stay_id, current_user)
		self._check_editable(stay, current_user)

		arrival_meter_id = stay.arrival_meter_id
		departure_meter_id = stay.departure_meter_id
		needs_meter_review = stay.needs_meter_review
		if data.arrival_meter_id is not None or data.departure_meter_id is not None:
			if not is_admin(current_user):
				raise PermissionDenied("Only administrators can reassign meters")
			arrival_meter_id = data.arrival_meter_id or arrival_meter_id
			departure_meter_id = data.departure_meter_id or departure_meter_id
			# a flagged stay stays flagged until an administrator assigns its meters
			needs_meter_review = False

		result = await self.validator.validate(StayCandidate(
			user_id=stay.user_id,
			arrival=data.arrival,
			departure=data.departure,
			arrival_reading=data.arrival_reading,
			departure_reading=data.departure_reading,
			members=data.members,
			guests=data.guests,
			stay_id=stay.id,
			meter_id=arrival_meter_id,
			departure_meter_id=departure_meter_id,
		))
		result.raise_for_rejection()
		parsed = result.parsed

		stay.arrival = parsed.arrival
		stay.departure = parsed.departure
		stay.arrival_reading = parsed.arrival_reading
		stay.departure_reading = parsed.departure_reading
		stay.members = data.members
		stay.guests = data.guests
		stay.year = parsed.arrival.year
		stay.skip_lodging = data.skip_lodging
		stay.arrival_meter_id = arrival_meter_id
		stay.departure_meter_id = departure_meter_id
		stay.needs_meter_review = needs_meter_review
		logger.info(f"Stay {stay.id} updated by {current_user.id}")
		return stay

	async def delete_stay(self, stay_id: UUID, current_user: User) -> None:
		stay = await self.get_stay(stay_id, current_user)
		self._check_editable(stay, current_user)
		await self.repos.stays.delete(stay)
		logger.info(f"Stay {stay_id} deleted by {current_user.id}")

	def _check_editable(self, stay: Stay, current_user: User) -> None:
		if not can_edit_year(stay.year, is_admin(current_user), self.today()):
			raise YearClosed(f"Year {stay.year} is closed; only administrators can change its stays")

	async def find_overlaps(self, user_id: UUID, year: Optional[int] = None) -> List[Stay]:
		"""Stays of other households that share counter range with the user's own stays"""
		own = await self.repos.stays.list_stays_for_user(user_id)
		others = await self.repos.stays.list_all_stays(year=year)
		others = [s for s in others if s.user_id != user_id]
		return find_overlapping_stays(own, others)

	async def stay_cost(self, stay_id: UUID, current_user: User) -> StayCost:
		stay = await self.get_stay(stay_id, current_user)
		owner = await self.repos.users.get(stay.user_id)
		return await self.engine.stay_cost(stay, user_exempt=bool(owner and owner.is_exempt))
