from datetime import date, datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict


class MeterCreate(BaseModel):
    installed_at: date
    notes: Optional[str] = None
    # Retire the active meter; required when one exists
    replace_active: bool = False
    # Final reading of the outgoing meter; defaults to its last observed reading
    outgoing_last_reading: Optional[int] = Field(None, ge=0, strict=True)


class MeterUpdate(BaseModel):
    notes: Optional[str] = None
    installed_at: Optional[date] = None
    removed_at: Optional[date] = None
    carryover_reading: Optional[int] = Field(None, ge=0, strict=True)


class MeterResponse(BaseModel):
    id: UUID
    installed_at: datetime
    removed_at: Optional[datetime] = None
    is_active: bool
    carryover_reading: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MeterSwapResponse(BaseModel):
    meter: MeterResponse
    retired: Optional[MeterResponse] = None
    flagged_stay_ids: List[UUID] = []


class MeterListResponse(BaseModel):
    total: int
    data: List[MeterResponse]
