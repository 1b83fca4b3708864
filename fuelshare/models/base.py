import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime
from sqlalchemy.dialects.postgresql import UUID


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


class BaseModel:
	"""Columns shared by every table"""

	id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
	created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
	updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
