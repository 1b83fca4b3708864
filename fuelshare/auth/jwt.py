import logging
from datetime import timedelta, datetime, timezone
from typing import Dict, Any, Optional
from jose import JWTError, jwt

from passlib.context import CryptContext

from fuelshare.config import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class AuthService:
	@staticmethod
	def verify_password(plain_password: str, hashed_password: str) -> bool:
		return pwd_context.verify(plain_password, hashed_password)

	@staticmethod
	def hash_password(password: str) -> str:
		return pwd_context.hash(password)

	@staticmethod
	def _encode(claims: Dict[str, Any], token_type: str, lifetime: timedelta) -> str:
		to_encode = dict(claims)
		to_encode.update({"exp": datetime.now(timezone.utc) + lifetime, "type": token_type})
		return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

	def create_access_token(self, data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
		"""Short lived token carrying the household id and role"""
		return self._encode(data, "access", expires_delta or timedelta(hours=settings.JWT_EXPIRATION_HOURS))

	def create_refresh_token(self, data: Dict[str, Any]) -> str:
		return self._encode(data, "refresh", timedelta(days=settings.JWT_REFRESH_EXPIRATION_DAYS))

	@staticmethod
	def decode_token(token: str, expected_type: Optional[str] = None) -> Optional[Dict[str, Any]]:
		"""Payload of a valid token, or None; ``expected_type`` rejects refresh tokens used as access tokens and vice versa"""
		try:
			payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
		except JWTError as e:
			logger.warning(f"JWT decode error: {e}")
			return None
		if expected_type is not None and payload.get("type") != expected_type:
			logger.warning(f"Token of type {payload.get('type')} used where {expected_type} was expected")
			return None
		return payload


auth_service = AuthService()
