from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict


class PriceTableResponse(BaseModel):
    year: int
    member_rate: Decimal
    guest_rate: Decimal
    price_per_liter: Decimal
    consumption_rate: float
    is_computed: bool = False
    # True when no row exists for the year and the fixed fallback prices apply
    is_fallback: bool = False

    model_config = ConfigDict(from_attributes=True)


class PriceTableUpdate(BaseModel):
    member_rate: Decimal = Field(..., ge=0)
    guest_rate: Decimal = Field(..., ge=0)
    price_per_liter: Optional[Decimal] = Field(None, gt=0)


class PriceTableListResponse(BaseModel):
    total: int
    data: List[PriceTableResponse]
