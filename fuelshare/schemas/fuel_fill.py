from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Union
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict


class FuelFillCreate(BaseModel):
    filled_at: date
    liters: float = Field(..., gt=0)
    price_per_liter: Decimal = Field(..., gt=0)
    # checked for whole numbers by the fill series
    counter_reading: Union[int, float] = Field(..., ge=0)
    meter_id: Optional[UUID] = None


class FuelFillResponse(BaseModel):
    id: UUID
    meter_id: UUID
    filled_at: datetime
    liters: float
    price_per_liter: Decimal
    counter_reading: int

    model_config = ConfigDict(from_attributes=True)


class FuelFillWithRateResponse(FuelFillResponse):
    hours_since_previous: Optional[int] = None
    consumption_rate: Optional[float] = None


class FuelFillCreatedResponse(FuelFillResponse):
    consumption_rate: Optional[float] = None
    rate_computed: bool
    updated_years: List[int] = []
