import enum

from sqlalchemy import Column, String, Enum, Boolean
from sqlalchemy.orm import relationship

from fuelshare.database import Base
from fuelshare.models.base import BaseModel


class UserRole(str, enum.Enum):
	ADMIN = "admin"
	MEMBER = "member"


class User(Base, BaseModel):
	__tablename__ = "users"

	username = Column(String(255), unique=True, nullable=False, index=True)
	hashed_password = Column(String(255), nullable=False)
	full_name = Column(String(255))
	role = Column(Enum(UserRole), nullable=False, default=UserRole.MEMBER)
	is_active = Column(Boolean, default=True)
	# Exempt households pay no lodging unless a stay says otherwise
	is_exempt = Column(Boolean, default=False, nullable=False)

	# Relationships
	stays = relationship("Stay", back_populates="user")
