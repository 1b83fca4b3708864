from sqlalchemy import Column, Text, Integer, Boolean, DateTime
from sqlalchemy.orm import relationship

from fuelshare.database import Base
from fuelshare.models.base import BaseModel


class Meter(Base, BaseModel):
    __tablename__ = "meters"

    installed_at = Column(DateTime(timezone=True), nullable=False)
    removed_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    # Last reading of this meter when it was replaced
    carryover_reading = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    fuel_fills = relationship("FuelFill", back_populates="meter")
