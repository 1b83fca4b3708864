from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class StayBase(BaseModel):
	# Kept loose on purpose: the stay validator reports bad dates and
	# fractional readings with the exact rule that failed.
	arrival: Union[date, str]
	departure: Union[date, str]
	arrival_reading: Union[int, float]
	departure_reading: Union[int, float]
	members: int = 1
	guests: int = 0
	skip_lodging: Optional[bool] = None


class StayCreate(StayBase):
	# Only administrators may book for somebody else
	user_id: Optional[UUID] = None


class StayUpdate(StayBase):
	arrival_meter_id: Optional[UUID] = None
	departure_meter_id: Optional[UUID] = None


class StayResponse(BaseModel):
	id: UUID
	user_id: UUID
	arrival: date
	departure: date
	arrival_reading: int
	departure_reading: int
	members: int
	guests: int
	year: int
	arrival_meter_id: Optional[UUID] = None
	departure_meter_id: Optional[UUID] = None
	needs_meter_review: bool
	skip_lodging: Optional[bool] = None
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)


class RateSegmentResponse(BaseModel):
	start: int
	end: int
	duration: int
	price_per_liter: float
	consumption_rate: float
	fill_id: Optional[UUID] = None
	is_fallback: bool

	model_config = ConfigDict(from_attributes=True)


class StayCostResponse(BaseModel):
	stay_id: Optional[UUID] = None
	nights: int
	burner_hours: int
	fuel_cost: Decimal
	lodging_cost: Decimal
	total_cost: Decimal
	lodging_skipped: bool
	segments: List[RateSegmentResponse] = []
	warnings: List[str] = []

	model_config = ConfigDict(from_attributes=True)
