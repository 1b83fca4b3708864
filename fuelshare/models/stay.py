from sqlalchemy import Column, ForeignKey, Integer, Date, Boolean, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from fuelshare.database import Base
from fuelshare.models.base import BaseModel


class Stay(Base, BaseModel):
	__tablename__ = "stays"

	user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
	arrival = Column(Date, nullable=False)
	departure = Column(Date, nullable=False)
	arrival_reading = Column(Integer, nullable=False)
	departure_reading = Column(Integer, nullable=False)
	members = Column(Integer, nullable=False, default=1)
	guests = Column(Integer, nullable=False, default=0)
	year = Column(Integer, nullable=False, index=True)

	arrival_meter_id = Column(UUID(as_uuid=True), ForeignKey("meters.id"), nullable=True)
	departure_meter_id = Column(UUID(as_uuid=True), ForeignKey("meters.id"), nullable=True)
	# Departure meter was replaced during the stay; an administrator has to fix the readings
	needs_meter_review = Column(Boolean, default=False, nullable=False)
	# None means: follow the user's exempt status
	skip_lodging = Column(Boolean, nullable=True)

	# Relationships
	user = relationship("User", back_populates="stays")

	__table_args__ = (
		CheckConstraint("guests >= 0", name="stay_guests_non_negative"),
	)
