import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from fuelshare.api.deps import get_repositories, get_services
from fuelshare.auth.dependencies import get_current_user, get_current_admin
from fuelshare.models.user import User
from fuelshare.repositories.base import Repositories
from fuelshare.schemas.annual import YearSummaryResponse, AnnualClosingResponse
from fuelshare.services.factory import Services
from fuelshare.services.stay_service import is_admin

router = APIRouter()
logger = logging.getLogger(__name__)


def _visible_user(current_user: User, user_id: Optional[UUID]) -> Optional[UUID]:
	# households only ever see their own figures
	if is_admin(current_user):
		return user_id
	return current_user.id


@router.get("/{year}", response_model=YearSummaryResponse)
async def get_year_summary(
		year: int,
		user_id: Optional[UUID] = Query(None),
		services: Services = Depends(get_services),
		current_user: User = Depends(get_current_user)
):
	summary = await services.aggregator.summarize_year(year, user_id=_visible_user(current_user, user_id))
	return YearSummaryResponse.model_validate(summary)


@router.get("/{year}/closing", response_model=AnnualClosingResponse)
async def get_annual_closing(
		year: int,
		services: Services = Depends(get_services),
		current_user: User = Depends(get_current_user)
):
	closing = await services.aggregator.get_closing(year)
	if closing is None:
		raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Year {year} is not closed")
	return closing


@router.post("/{year}/closing", response_model=AnnualClosingResponse, status_code=status.HTTP_201_CREATED)
async def close_year(
		year: int,
		services: Services = Depends(get_services),
		repos: Repositories = Depends(get_repositories),
		current_user: User = Depends(get_current_admin)
):
	closing = await services.aggregator.close_year(year)
	await repos.commit()
	logger.info(f"Year {year} closed by {current_user.username}")
	return closing


@router.get("/{year}/export")
async def export_year_excel(
		year: int,
		user_id: Optional[UUID] = Query(None),
		services: Services = Depends(get_services),
		current_user: User = Depends(get_current_user)
):
	"""Stays and totals of a year as an Excel workbook"""
	output = await services.export.export_year(year, user_id=_visible_user(current_user, user_id))
	filename = f"fuelshare_{year}.xlsx"
	return StreamingResponse(
		output,
		media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
		headers={"Content-Disposition": f"attachment; filename={filename}"}
	)
