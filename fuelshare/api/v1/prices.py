from fastapi import APIRouter, Depends

from fuelshare.api.deps import get_repositories, get_services
from fuelshare.auth.dependencies import get_current_user, get_current_admin
from fuelshare.models.user import User
from fuelshare.repositories.base import Repositories
from fuelshare.schemas.price import PriceTableResponse, PriceTableUpdate, PriceTableListResponse
from fuelshare.services.factory import Services

router = APIRouter()


@router.get("/", response_model=PriceTableListResponse)
async def list_price_tables(
        services: Services = Depends(get_services),
        current_user: User = Depends(get_current_user)
):
    tables = await services.prices.list_price_tables()
    return PriceTableListResponse(total=len(tables), data=tables)


@router.get("/{year}", response_model=PriceTableResponse)
async def get_price_table(
        year: int,
        services: Services = Depends(get_services),
        current_user: User = Depends(get_current_user)
):
    """Rates of a year; years without a row get the fixed fallback prices"""
    return await services.prices.get_price_table(year)


@router.put("/{year}", response_model=PriceTableResponse)
async def set_lodging_rates(
        year: int,
        data: PriceTableUpdate,
        services: Services = Depends(get_services),
        repos: Repositories = Depends(get_repositories),
        current_user: User = Depends(get_current_admin)
):
    table = await services.prices.set_lodging_rates(
        year,
        member_rate=data.member_rate,
        guest_rate=data.guest_rate,
        price_per_liter=data.price_per_liter,
    )
    await repos.commit()
    return table
