import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from fuelshare.api.deps import get_repositories
from fuelshare.auth.dependencies import get_current_user
from fuelshare.auth.jwt import auth_service
from fuelshare.models.user import User
from fuelshare.repositories.base import Repositories
from fuelshare.schemas.auth import UserResponse, LoginResponse, LoginRequest, RefreshRequest

router = APIRouter()
logger = logging.getLogger(__name__)


def _issue_tokens(user: User) -> LoginResponse:
	return LoginResponse(
		access_token=auth_service.create_access_token({"sub": str(user.id), "role": user.role.value}),
		refresh_token=auth_service.create_refresh_token({"sub": str(user.id)}),
		user=UserResponse.model_validate(user)
	)


@router.post("/login", response_model=LoginResponse)
async def login(
		request: LoginRequest,
		repos: Repositories = Depends(get_repositories)
):
	"""Login and get access token."""
	user = await repos.users.get_by_username(request.username)

	if not user or not auth_service.verify_password(request.password, user.hashed_password):
		raise HTTPException(
			status_code=status.HTTP_401_UNAUTHORIZED,
			detail="Incorrect username or password",
			headers={"WWW-Authenticate": "Bearer"}
		)
	if not user.is_active:
		raise HTTPException(
			status_code=status.HTTP_400_BAD_REQUEST,
			detail="Inactive user"
		)

	logger.info(f"User logged in: {user.username}")
	return _issue_tokens(user)


@router.post("/refresh", response_model=LoginResponse)
async def refresh_token(
		request: RefreshRequest,
		repos: Repositories = Depends(get_repositories)
):
	payload = auth_service.decode_token(request.refresh_token, expected_type="refresh")
	if not payload:
		raise HTTPException(
			status_code=status.HTTP_401_UNAUTHORIZED,
			detail="Invalid refresh token"
		)

	try:
		user = await repos.users.get(UUID(str(payload.get("sub"))))
	except ValueError:
		user = None

	if not user or not user.is_active:
		raise HTTPException(
			status_code=status.HTTP_401_UNAUTHORIZED,
			detail="User not found or inactive"
		)
	return _issue_tokens(user)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
	return current_user
