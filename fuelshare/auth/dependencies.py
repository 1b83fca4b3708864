from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from fuelshare.api.deps import get_repositories
from fuelshare.auth.jwt import auth_service
from fuelshare.models.user import User, UserRole
from fuelshare.repositories.base import Repositories

security = HTTPBearer()

async def get_current_user(
		credentials: HTTPAuthorizationCredentials = Depends(security),
		repos: Repositories = Depends(get_repositories)
) -> User:
	"""Household behind the bearer token"""
	payload = auth_service.decode_token(credentials.credentials, expected_type="access")

	if not payload:
		raise HTTPException(
			status_code=status.HTTP_401_UNAUTHORIZED,
			detail="Invalid authentication credentials",
			headers={"WWW-Authenticate": "Bearer"}
		)
	try:
		user_id = UUID(str(payload.get("sub")))
	except ValueError:
		raise HTTPException(
			status_code=status.HTTP_401_UNAUTHORIZED,
			detail="Invalid token payload"
		)

	user = await repos.users.get(user_id)
	if not user:
		raise HTTPException(
			status_code=status.HTTP_404_NOT_FOUND,
			detail="User not found"
		)

	if not user.is_active:
		raise HTTPException(
			status_code=status.HTTP_400_BAD_REQUEST,
			detail="Inactive user"
		)
	return user

async def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
	if current_user.role != UserRole.ADMIN:
		raise HTTPException(
			status_code=status.HTTP_403_FORBIDDEN,
			detail="Admin access required"
		)
	return current_user
