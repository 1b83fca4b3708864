from sqlalchemy import Column, ForeignKey, Float, Integer, Numeric, DateTime, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from fuelshare.database import Base
from fuelshare.models.base import BaseModel


class FuelFill(Base, BaseModel):
	__tablename__ = "fuel_fills"

	meter_id = Column(UUID(as_uuid=True), ForeignKey("meters.id"), nullable=False, index=True)
	filled_at = Column(DateTime(timezone=True), nullable=False)
	liters = Column(Float, nullable=False)
	price_per_liter = Column(Numeric(10, 4), nullable=False)
	counter_reading = Column(Integer, nullable=False)

	# Relationships
	meter = relationship("Meter", back_populates="fuel_fills")

	__table_args__ = (
		UniqueConstraint("meter_id", "counter_reading", name="unique_meter_fill_reading"),
	)
