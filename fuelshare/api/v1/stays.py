import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from fuelshare.api.deps import get_repositories, get_services
from fuelshare.auth.dependencies import get_current_user
from fuelshare.core.exceptions import PermissionDenied
from fuelshare.models.user import User
from fuelshare.repositories.base import Repositories
from fuelshare.schemas.stay import StayCreate, StayUpdate, StayResponse, StayCostResponse
from fuelshare.services.factory import Services
from fuelshare.services.stay_service import is_admin

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=List[StayResponse])
async def list_stays(
		year: Optional[int] = Query(None),
		services: Services = Depends(get_services),
		current_user: User = Depends(get_current_user)
):
	"""Own stays; administrators see every household's"""
	return await services.stays.list_stays(current_user, year=year)


@router.post("/", response_model=StayResponse, status_code=status.HTTP_201_CREATED)
async def create_stay(
		data: StayCreate,
		services: Services = Depends(get_services),
		repos: Repositories = Depends(get_repositories),
		current_user: User = Depends(get_current_user)
):
	"""Record a stay. Rejections come back as 422 with the rule that failed."""
	stay = await services.stays.create_stay(data, current_user)
	await repos.commit()
	return stay


@router.get("/overlaps", response_model=List[StayResponse])
async def list_overlapping_stays(
		year: Optional[int] = Query(None),
		user_id: Optional[UUID] = Query(None, description="Administrators only"),
		services: Services = Depends(get_services),
		current_user: User = Depends(get_current_user)
):
	"""Other households' stays sharing counter range with the user's stays"""
	target = current_user.id
	if user_id is not None and user_id != current_user.id:
		if not is_admin(current_user):
			raise PermissionDenied("Only administrators can inspect other households")
		target = user_id
	return await services.stays.find_overlaps(target, year=year)


@router.get("/{stay_id}", response_model=StayResponse)
async def get_stay(
		stay_id: UUID,
		services: Services = Depends(get_services),
		current_user: User = Depends(get_current_user)
):
	return await services.stays.get_stay(stay_id, current_user)


@router.put("/{stay_id}", response_model=StayResponse)
async def update_stay(
		stay_id: UUID,
		data: StayUpdate,
		services: Services = Depends(get_services),
		repos: Repositories = Depends(get_repositories),
		current_user: User = Depends(get_current_user)
):
	stay = await services.stays.update_stay(stay_id, data, current_user)
	await repos.commit()
	return stay


@router.delete("/{stay_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_stay(
		stay_id: UUID,
		services: Services = Depends(get_services),
		repos: Repositories = Depends(get_repositories),
		current_user: User = Depends(get_current_user)
):
	await services.stays.delete_stay(stay_id, current_user)
	await repos.commit()


@router.get("/{stay_id}/cost", response_model=StayCostResponse)
async def get_stay_cost(
		stay_id: UUID,
		services: Services = Depends(get_services),
		current_user: User = Depends(get_current_user)
):
	"""Fuel and lodging cost of a stay, with the rate segments it was priced on"""
	cost = await services.stays.stay_cost(stay_id, current_user)
	return StayCostResponse.model_validate(cost)
