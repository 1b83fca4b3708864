from datetime import datetime
from decimal import Decimal
from typing import Dict, List

from pydantic import BaseModel, ConfigDict

from fuelshare.schemas.stay import StayCostResponse


class YearSummaryResponse(BaseModel):
	year: int
	burner_hours: int
	fuel_cost: Decimal
	lodging_cost: Decimal
	total_cost: Decimal
	stay_count: int
	fill_count: int
	consumption_rate: float
	rate_is_computed: bool
	monthly_hours: List[int]
	cost_per_user: Dict[str, Decimal]
	stays: List[StayCostResponse] = []
	closed: bool

	model_config = ConfigDict(from_attributes=True)


class AnnualClosingResponse(BaseModel):
	year: int
	counter_delta: int
	total_cost: Decimal
	fuel_cost: Decimal
	lodging_cost: Decimal
	stay_count: int
	consumption_rate: float
	closed_at: datetime

	model_config = ConfigDict(from_attributes=True)
