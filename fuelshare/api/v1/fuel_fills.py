import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from fuelshare.api.deps import get_repositories, get_services
from fuelshare.auth.dependencies import get_current_user, get_current_admin
from fuelshare.models.user import User
from fuelshare.repositories.base import Repositories
from fuelshare.schemas.fuel_fill import FuelFillCreate, FuelFillCreatedResponse, FuelFillResponse, FuelFillWithRateResponse
from fuelshare.services.factory import Services

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=List[FuelFillWithRateResponse])
async def list_fuel_fills(
		meter_id: Optional[UUID] = Query(None, description="Defaults to the active meter"),
		services: Services = Depends(get_services),
		current_user: User = Depends(get_current_user)
):
	"""Fills of a meter, newest first, each with the consumption rate it implies"""
	entries = await services.fills.list_with_rates(meter_id)
	return [
		FuelFillWithRateResponse(
			**FuelFillResponse.model_validate(e.fill).model_dump(),
			hours_since_previous=e.hours_since_previous,
			consumption_rate=e.consumption_rate,
		)
		for e in entries
	]


@router.post("/", response_model=FuelFillCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_fuel_fill(
		data: FuelFillCreate,
		services: Services = Depends(get_services),
		repos: Repositories = Depends(get_repositories),
		current_user: User = Depends(get_current_admin)
):
	recorded = await services.fills.add_fill(
		filled_at=data.filled_at,
		liters=data.liters,
		price_per_liter=data.price_per_liter,
		counter_reading=data.counter_reading,
		meter_id=data.meter_id,
	)
	await repos.commit()
	return FuelFillCreatedResponse(
		**FuelFillResponse.model_validate(recorded.fill).model_dump(),
		consumption_rate=recorded.consumption_rate,
		rate_computed=recorded.rate_computed,
		updated_years=recorded.updated_years,
	)


@router.delete("/{fill_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fuel_fill(
		fill_id: UUID,
		services: Services = Depends(get_services),
		repos: Repositories = Depends(get_repositories),
		current_user: User = Depends(get_current_admin)
):
	await services.fills.delete_fill(fill_id)
	await repos.commit()
