from sqlalchemy import Column, Integer, Float, Numeric, Boolean

from fuelshare.database import Base
from fuelshare.models.base import BaseModel


class PriceTable(Base, BaseModel):
	__tablename__ = "price_tables"

	year = Column(Integer, unique=True, nullable=False, index=True)
	member_rate = Column(Numeric(10, 2), nullable=False)
	guest_rate = Column(Numeric(10, 2), nullable=False)
	price_per_liter = Column(Numeric(10, 4), nullable=False)
	consumption_rate = Column(Float, nullable=False)
	# True once the rate comes from two or more fills instead of the static fallback
	is_computed = Column(Boolean, default=False, nullable=False)
