from sqlalchemy import Column, Integer, Float, Numeric, DateTime

from fuelshare.database import Base
from fuelshare.models.base import BaseModel


class AnnualClosing(Base, BaseModel):
	__tablename__ = "annual_closings"

	year = Column(Integer, unique=True, nullable=False, index=True)
	counter_delta = Column(Integer, nullable=False)
	total_cost = Column(Numeric(12, 2), nullable=False)
	fuel_cost = Column(Numeric(12, 2), nullable=False)
	lodging_cost = Column(Numeric(12, 2), nullable=False)
	stay_count = Column(Integer, nullable=False)
	consumption_rate = Column(Float, nullable=False)
	closed_at = Column(DateTime(timezone=True), nullable=False)
