from datetime import date
from typing import Callable

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fuelshare.database import get_session
from fuelshare.repositories.base import Repositories
from fuelshare.repositories.sql import build_repositories
from fuelshare.services.factory import Services, build_services


async def get_repositories(session: AsyncSession = Depends(get_session)) -> Repositories:
	return build_repositories(session)


def get_today() -> Callable[[], date]:
	"""Clock of the request; overridden in tests"""
	return date.today


async def get_services(
		repos: Repositories = Depends(get_repositories),
		today: Callable[[], date] = Depends(get_today)
) -> Services:
	return build_services(repos, today=today)
