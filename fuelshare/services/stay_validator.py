"""Checks a stay before it is written.

Stages run in order and the first failing rule is returned:

1. syntactic: readings are whole, non-negative and increasing, dates are
   valid, arrival is not in the future, departure follows arrival, at least
   one member is present every night;
2. counter continuity: none of the user's own stays ends above the new
   arrival reading;
3. temporal consistency: the arrival reading does not lie inside the range
   of another stay that ended before the new arrival.

Overlap in counter space is not a rejection. Households share the house, so
overlapping stays are only reported to each other (see ``find_overlapping_stays``).
"""
import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Union
from uuid import UUID

from fuelshare.core.exceptions import Rejection, RejectionRule, ValidationFailure
from fuelshare.models.stay import Stay
from fuelshare.monitoring.metrics import stay_validations
from fuelshare.repositories.base import StayRepository
from fuelshare.services.cost_allocation import count_nights

logger = logging.getLogger(__name__)


class ValidationStage(str, enum.Enum):
	SYNTACTIC = "syntactic"
	COUNTER_CONTINUITY = "counter_continuity"
	TEMPORAL_CONSISTENCY = "temporal_consistency"
	ACCEPTED = "accepted"


@dataclass
class StayCandidate:
	user_id: UUID
	arrival: Union[date, str]
	departure: Union[date, str]
	arrival_reading: Union[int, float]
	departure_reading: Union[int, float]
	members: int
	guests: int = 0
	# stay being edited, left out of the history checks
	stay_id: Optional[UUID] = None
	# meter at arrival; history checks only compare stays on this meter
	meter_id: Optional[UUID] = None
	# differs from meter_id when the meter was swapped during the stay
	departure_meter_id: Optional[UUID] = None

	@property
	def straddles_meter_swap(self) -> bool:
		return (
			self.meter_id is not None
			and self.departure_meter_id is not None
			and self.meter_id != self.departure_meter_id
		)


@dataclass
class ParsedStay:
	arrival: date
	departure: date
	arrival_reading: int
	departure_reading: int
	nights: int


@dataclass
class ValidationResult:
	stage: ValidationStage
	rejection: Optional[Rejection] = None
	parsed: Optional[ParsedStay] = None

	@property
	def accepted(self) -> bool:
		return self.rejection is None

	def raise_for_rejection(self) -> None:
		if self.rejection is not None:
			raise ValidationFailure(self.rejection)


def _as_whole_number(value) -> Optional[int]:
	if isinstance(value, bool):
		return None
	if isinstance(value, int):
		return value
	if isinstance(value, float) and value.is_integer():
		return int(value)
	return None


def _as_date(value) -> Optional[date]:
	if isinstance(value, datetime):
		return value.date()
	if isinstance(value, date):
		return value
	if isinstance(value, str):
		try:
			return date.fromisoformat(value.strip())
		except ValueError:
			return None
	return None


def _stay_meter(stay: Stay) -> Optional[UUID]:
	return stay.departure_meter_id or stay.arrival_meter_id


def _straddles(stay: Stay) -> bool:
	return bool(stay.arrival_meter_id and stay.departure_meter_id and stay.arrival_meter_id != stay.departure_meter_id)


def _same_meter(stay: Stay, meter_id: Optional[UUID]) -> bool:
	# unknown meters are compared, as before meters were tracked
	stay_meter = _stay_meter(stay)
	return meter_id is None or stay_meter is None or stay_meter == meter_id


def check_syntax(candidate: StayCandidate, today: date) -> tuple:
	"""Returns (rejection, parsed); exactly one of them is None"""
	start = _as_whole_number(candidate.arrival_reading)
	end = _as_whole_number(candidate.departure_reading)
	if start is None or end is None:
		return Rejection(
			RejectionRule.NON_INTEGER_READING,
			"Counter readings must be whole numbers (e.g. 1350, not 1350.5).",
			"arrival_reading" if start is None else "departure_reading",
		), None

	if start < 0 or end < 0:
		return Rejection(
			RejectionRule.NEGATIVE_READING,
			"Counter readings cannot be negative.",
			"arrival_reading" if start < 0 else "departure_reading",
		), None

	# readings of a stay spanning a meter swap are on two scales
	if end <= start and not candidate.straddles_meter_swap:
		return Rejection(
			RejectionRule.READING_NOT_INCREASING,
			"The departure reading must be greater than the arrival reading.",
			"departure_reading",
		), None

	arrival = _as_date(candidate.arrival)
	departure = _as_date(candidate.departure)
	if arrival is None or departure is None:
		return Rejection(
			RejectionRule.INVALID_DATE,
			"Arrival and departure must be valid calendar dates (YYYY-MM-DD).",
			"arrival" if arrival is None else "departure",
		), None

	if arrival > today:
		return Rejection(
			RejectionRule.ARRIVAL_IN_FUTURE,
			"Arrival cannot be in the future. Choose today or an earlier date.",
			"arrival",
		), None

	if departure <= arrival:
		return Rejection(
			RejectionRule.DEPARTURE_NOT_AFTER_ARRIVAL,
			"Departure must be after arrival.",
			"departure",
		), None

	if candidate.members is None or candidate.members < 1:
		return Rejection(
			RejectionRule.NO_MEMBER,
			"At least one member has to be present.",
			"members",
		), None

	if candidate.guests is not None and candidate.guests < 0:
		return Rejection(
			RejectionRule.NEGATIVE_GUESTS,
			"The number of guests cannot be negative.",
			"guests",
		), None

	nights = count_nights(arrival, departure)
	if candidate.members < nights:
		return Rejection(
			RejectionRule.MEMBERS_BELOW_NIGHTS,
			f"Members ({candidate.members}) cannot be fewer than the number of nights ({nights}); "
			f"a member has to be present every night.",
			"members",
		), None

	return None, ParsedStay(arrival, departure, start, end, nights)


def check_counter_continuity(
		own_stays: Iterable[Stay],
		arrival_reading: int,
		meter_id: Optional[UUID] = None
) -> Optional[Rejection]:
	"""The user's own counter history must not run backwards"""
	offending = [
		s for s in own_stays
		if _same_meter(s, meter_id) and s.departure_reading is not None and s.departure_reading > arrival_reading
	]
	if not offending:
		return None

	worst = max(offending, key=lambda s: s.departure_reading)
	return Rejection(
		RejectionRule.COUNTER_CONTINUITY,
		f"Counter reading {arrival_reading} is below the departure reading {worst.departure_reading} "
		f"of your stay ending {worst.departure.isoformat()}. Counters cannot run backwards; "
		f"choose a reading of at least {worst.departure_reading}.",
		"arrival_reading",
	)


def check_temporal_consistency(
		all_stays: Iterable[Stay],
		arrival: date,
		arrival_reading: int,
		meter_id: Optional[UUID] = None
) -> Optional[Rejection]:
	"""The counter cannot show a value it had on a stay that already ended"""
	offending = []
	for other in all_stays:
		if not _same_meter(other, meter_id):
			continue
		if _straddles(other):
			# readings of a straddling stay are on two different scales
			continue
		# strictly inside: a reading equal to either end of the earlier stay is accepted
		if other.departure < arrival and other.arrival_reading < arrival_reading < other.departure_reading:
			offending.append(other)
	if not offending:
		return None

	other = max(offending, key=lambda s: s.departure_reading)
	return Rejection(
		RejectionRule.TEMPORAL_CONSISTENCY,
		f"Counter reading {arrival_reading} lies within the range {other.arrival_reading}-{other.departure_reading} "
		f"of an earlier stay ending {other.departure.isoformat()}, which is impossible in time. "
		f"Choose a reading outside {other.arrival_reading}-{other.departure_reading}.",
		"arrival_reading",
	)


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
	"""Symmetric overlap of two counter ranges; touching ranges do not overlap"""
	return a_end > b_start and a_start < b_end


def _counter_range(stay: Stay) -> tuple:
	# only the part after the swap is on the departure meter's scale
	if _straddles(stay):
		return 0, stay.departure_reading
	return stay.arrival_reading, stay.departure_reading


def stays_overlap(a: Stay, b: Stay) -> bool:
	if _stay_meter(a) and _stay_meter(b) and _stay_meter(a) != _stay_meter(b):
		return False
	return overlaps(*_counter_range(a), *_counter_range(b))


def find_overlapping_stays(own_stays: Iterable[Stay], other_stays: Iterable[Stay]) -> List[Stay]:
	"""Other households' stays sharing counter range with any of ``own_stays``, each once"""
	own_stays = list(own_stays)
	own_ids = {s.id for s in own_stays}
	found = []
	seen = set()
	for other in other_stays:
		if other.id in own_ids or other.id in seen:
			continue
		if any(stays_overlap(own, other) for own in own_stays):
			seen.add(other.id)
			found.append(other)
	return found


class StayValidator:
	def __init__(self, stays: StayRepository, today: Callable[[], date] = date.today):
		self.stays = stays
		self.today = today

	async def validate(self, candidate: StayCandidate) -> ValidationResult:
		rejection, parsed = check_syntax(candidate, self.today())
		if rejection is not None:
			return self._reject(ValidationStage.SYNTACTIC, rejection)

		own_stays = await self.stays.list_stays_for_user(candidate.user_id, exclude_id=candidate.stay_id)
		rejection = check_counter_continuity(own_stays, parsed.arrival_reading, candidate.meter_id)
		if rejection is not None:
			return self._reject(ValidationStage.COUNTER_CONTINUITY, rejection, parsed)

		all_stays = await self.stays.list_all_stays(exclude_id=candidate.stay_id)
		rejection = check_temporal_consistency(all_stays, parsed.arrival, parsed.arrival_reading, candidate.meter_id)
		if rejection is not None:
			return self._reject(ValidationStage.TEMPORAL_CONSISTENCY, rejection, parsed)

		stay_validations.labels(outcome="accepted", rule="").inc()
		return ValidationResult(stage=ValidationStage.ACCEPTED, parsed=parsed)

	def _reject(self, stage: ValidationStage, rejection: Rejection, parsed: Optional[ParsedStay] = None) -> ValidationResult:
		stay_validations.labels(outcome="rejected", rule=rejection.rule.value).inc()
		logger.info(f"Stay rejected at {stage.value}: {rejection.rule.value}")
		return ValidationResult(stage=stage, rejection=rejection, parsed=parsed)
