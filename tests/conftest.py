import pytest
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport

from fuelshare.api.deps import get_repositories, get_today
from fuelshare.auth.jwt import auth_service
from fuelshare.main import app
from fuelshare.models import Meter, User, UserRole
from fuelshare.services.factory import build_services
from tests.fakes import FakeStore, TODAY, utc


@pytest.fixture
def store() -> FakeStore:
	return FakeStore()


@pytest.fixture
def repos(store: FakeStore):
	return store.repositories()


@pytest.fixture
def services(repos):
	return build_services(repos, today=lambda: TODAY)


async def _user(store: FakeStore, username: str, role: UserRole, is_exempt: bool = False) -> User:
	return await store.users.add(User(
		username=username,
		hashed_password=auth_service.hash_password(f"{username}-pass"),
		full_name=username.title(),
		role=role,
		is_active=True,
		is_exempt=is_exempt,
	))


@pytest.fixture
async def member(store: FakeStore) -> User:
	return await _user(store, "berger", UserRole.MEMBER)


@pytest.fixture
async def other_member(store: FakeStore) -> User:
	return await _user(store, "keller", UserRole.MEMBER)


@pytest.fixture
async def exempt_member(store: FakeStore) -> User:
	return await _user(store, "founder", UserRole.MEMBER, is_exempt=True)


@pytest.fixture
async def admin(store: FakeStore) -> User:
	return await _user(store, "admin", UserRole.ADMIN)


@pytest.fixture
async def meter(store: FakeStore) -> Meter:
	return await store.meters.add(Meter(installed_at=utc(2020, 1, 1), is_active=True))


@pytest.fixture
async def client(repos) -> AsyncGenerator[AsyncClient, None]:
	app.dependency_overrides[get_repositories] = lambda: repos
	app.dependency_overrides[get_today] = lambda: (lambda: TODAY)

	async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
		yield client

	app.dependency_overrides.clear()


@pytest.fixture
def member_headers(member: User) -> dict:
	token = auth_service.create_access_token({"sub": str(member.id), "role": member.role.value})
	return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin: User) -> dict:
	token = auth_service.create_access_token({"sub": str(admin.id), "role": admin.role.value})
	return {"Authorization": f"Bearer {token}"}
