import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from fuelshare.api.deps import get_repositories, get_services
from fuelshare.auth.dependencies import get_current_user, get_current_admin
from fuelshare.models.user import User
from fuelshare.repositories.base import Repositories
from fuelshare.schemas.meter import MeterResponse, MeterCreate, MeterUpdate, MeterSwapResponse, MeterListResponse
from fuelshare.services.factory import Services

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=MeterListResponse)
async def list_meters(
        services: Services = Depends(get_services),
        current_user: User = Depends(get_current_user)
):
    """All meters, the active one first"""
    meters = await services.ledger.list_meters()
    return MeterListResponse(
        total=len(meters),
        data=[MeterResponse.model_validate(m) for m in meters]
    )


@router.get("/active", response_model=MeterResponse)
async def get_active_meter(
        services: Services = Depends(get_services),
        current_user: User = Depends(get_current_user)
):
    meter = await services.ledger.get_active_meter()
    if meter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active meter")
    return meter


@router.post("/", response_model=MeterSwapResponse, status_code=status.HTTP_201_CREATED)
async def install_meter(
        data: MeterCreate,
        services: Services = Depends(get_services),
        repos: Repositories = Depends(get_repositories),
        current_user: User = Depends(get_current_admin)
):
    """Install a meter. With ``replace_active`` the current meter is retired and
    stays departing after the swap are flagged for review."""
    swap = await services.ledger.install_meter(
        installed_at=data.installed_at,
        notes=data.notes,
        replace_active=data.replace_active,
        outgoing_last_reading=data.outgoing_last_reading,
    )
    await repos.commit()
    return MeterSwapResponse(
        meter=MeterResponse.model_validate(swap.meter),
        retired=MeterResponse.model_validate(swap.retired) if swap.retired is not None else None,
        flagged_stay_ids=[s.id for s in swap.flagged_stays],
    )


@router.get("/{meter_id}", response_model=MeterResponse)
async def get_meter(
        meter_id: UUID,
        services: Services = Depends(get_services),
        current_user: User = Depends(get_current_user)
):
    return await services.ledger.get_meter(meter_id)


@router.patch("/{meter_id}", response_model=MeterResponse)
async def update_meter(
        meter_id: UUID,
        data: MeterUpdate,
        services: Services = Depends(get_services),
        repos: Repositories = Depends(get_repositories),
        current_user: User = Depends(get_current_admin)
):
    meter = await services.ledger.update_meter(meter_id, **data.model_dump(exclude_unset=True))
    await repos.commit()
    logger.info(f"Meter {meter_id} updated by {current_user.username}")
    return meter


@router.delete("/{meter_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_meter(
        meter_id: UUID,
        services: Services = Depends(get_services),
        repos: Repositories = Depends(get_repositories),
        current_user: User = Depends(get_current_admin)
):
    await services.ledger.delete_meter(meter_id)
    await repos.commit()
