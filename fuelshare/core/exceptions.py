import enum
from dataclasses import dataclass
from typing import Optional


class RejectionRule(str, enum.Enum):
	# syntactic
	NON_INTEGER_READING = "non_integer_reading"
	NEGATIVE_READING = "negative_reading"
	READING_NOT_INCREASING = "reading_not_increasing"
	INVALID_DATE = "invalid_date"
	ARRIVAL_IN_FUTURE = "arrival_in_future"
	DEPARTURE_NOT_AFTER_ARRIVAL = "departure_not_after_arrival"
	NO_MEMBER = "no_member"
	NEGATIVE_GUESTS = "negative_guests"
	MEMBERS_BELOW_NIGHTS = "members_below_nights"
	# history
	COUNTER_CONTINUITY = "counter_continuity"
	TEMPORAL_CONSISTENCY = "temporal_consistency"
	# fuel fills
	NON_POSITIVE_LITERS = "non_positive_liters"
	NON_POSITIVE_PRICE = "non_positive_price"
	FILL_READING_NOT_INCREASING = "fill_reading_not_increasing"
	NO_ACTIVE_METER = "no_active_meter"


@dataclass(frozen=True)
class Rejection:
	rule: RejectionRule
	message: str
	field: Optional[str] = None

	def as_dict(self) -> dict:
		return {"rule": self.rule.value, "field": self.field, "message": self.message}


class FuelShareError(Exception):
	"""Base class for domain errors"""


class ValidationFailure(FuelShareError):
	"""A stay was rejected; carries the first rule that failed"""

	def __init__(self, rejection: Rejection):
		super().__init__(rejection.message)
		self.rejection = rejection

	@property
	def rule(self) -> RejectionRule:
		return self.rejection.rule


class FillRejected(ValidationFailure):
	"""A fuel fill would break the fill series of its meter"""


class MeterConflict(FuelShareError):
	pass


class NotFound(FuelShareError):
	pass


class PermissionDenied(FuelShareError):
	pass


class YearClosed(PermissionDenied):
	pass


class AnnualClosingExists(FuelShareError):
	pass


class DataIntegrityWarning(UserWarning):
	"""Non-fatal inconsistency; logged and reported, computation continues"""
