import pytest
from datetime import date

from fuelshare.core.exceptions import RejectionRule, ValidationFailure
from fuelshare.models import Meter, User
from fuelshare.services.stay_validator import (
	StayCandidate,
	StayValidator,
	ValidationStage,
	check_syntax,
	find_overlapping_stays,
	overlaps,
)
from tests.fakes import TODAY, stay, utc


def candidate(user_id=None, **overrides) -> StayCandidate:
	values = dict(
		user_id=user_id,
		arrival=date(2024, 6, 1),
		departure=date(2024, 6, 2),
		arrival_reading=1000,
		departure_reading=1010,
		members=1,
		guests=0,
	)
	values.update(overrides)
	return StayCandidate(**values)


@pytest.fixture
def validator(store) -> StayValidator:
	return StayValidator(store.stays, today=lambda: TODAY)


@pytest.mark.parametrize("overrides, rule", [
	(dict(arrival_reading=1000.5), RejectionRule.NON_INTEGER_READING),
	(dict(departure_reading=-5), RejectionRule.NEGATIVE_READING),
	(dict(departure_reading=1000), RejectionRule.READING_NOT_INCREASING),
	(dict(arrival="2024-02-30"), RejectionRule.INVALID_DATE),
	(dict(arrival=date(2024, 6, 16), departure=date(2024, 6, 17)), RejectionRule.ARRIVAL_IN_FUTURE),
	(dict(departure=date(2024, 6, 1)), RejectionRule.DEPARTURE_NOT_AFTER_ARRIVAL),
	(dict(members=0), RejectionRule.NO_MEMBER),
	(dict(guests=-1), RejectionRule.NEGATIVE_GUESTS),
	(dict(departure=date(2024, 6, 4), members=2), RejectionRule.MEMBERS_BELOW_NIGHTS),
])
def test_syntax_rules(overrides, rule):
	rejection, parsed = check_syntax(candidate(**overrides), TODAY)
	assert parsed is None
	assert rejection.rule == rule


def test_syntax_accepts_iso_strings_and_whole_floats():
	rejection, parsed = check_syntax(
		candidate(arrival="2024-06-01", departure="2024-06-03", departure_reading=1020.0, members=2),
		TODAY,
	)
	assert rejection is None
	assert parsed.arrival == date(2024, 6, 1)
	assert parsed.departure_reading == 1020
	assert parsed.nights == 2


def test_arrival_today_is_allowed():
	rejection, _ = check_syntax(candidate(arrival=TODAY, departure=date(2024, 6, 16)), TODAY)
	assert rejection is None


@pytest.mark.asyncio
async def test_counter_continuity_wins_over_temporal_consistency(store, validator, member: User):
	await store.stays.add(stay(member, date(2024, 5, 1), date(2024, 5, 3), 650, 785, members=2))

	result = await validator.validate(candidate(
		member.id, arrival=date(2024, 5, 10), departure=date(2024, 5, 11), arrival_reading=700, departure_reading=720
	))

	assert result.stage == ValidationStage.COUNTER_CONTINUITY
	assert result.rejection.rule == RejectionRule.COUNTER_CONTINUITY
	assert "785" in result.rejection.message
	with pytest.raises(ValidationFailure) as exc_info:
		result.raise_for_rejection()
	assert exc_info.value.rule == RejectionRule.COUNTER_CONTINUITY


@pytest.mark.asyncio
async def test_reading_inside_an_earlier_stay_of_another_household(store, validator, member, other_member):
	await store.stays.add(stay(other_member, date(2024, 5, 1), date(2024, 5, 3), 650, 785, members=2))

	inside = await validator.validate(candidate(
		member.id, arrival=date(2024, 5, 10), departure=date(2024, 5, 11), arrival_reading=700, departure_reading=720
	))
	assert inside.rejection.rule == RejectionRule.TEMPORAL_CONSISTENCY

	at_end = await validator.validate(candidate(
		member.id, arrival=date(2024, 5, 10), departure=date(2024, 5, 11), arrival_reading=785, departure_reading=800
	))
	assert at_end.accepted

	at_start = await validator.validate(candidate(
		member.id, arrival=date(2024, 5, 10), departure=date(2024, 5, 11), arrival_reading=650, departure_reading=660
	))
	assert at_start.accepted


@pytest.mark.asyncio
async def test_concurrent_stays_of_other_households_are_accepted(store, validator, member, other_member):
	# same days, overlapping counters: households share the house
	await store.stays.add(stay(other_member, date(2024, 6, 1), date(2024, 6, 2), 1000, 1010))

	result = await validator.validate(candidate(member.id, arrival_reading=1005, departure_reading=1015))
	assert result.accepted
	assert result.stage == ValidationStage.ACCEPTED


@pytest.mark.asyncio
async def test_history_on_another_meter_is_ignored(store, validator, member):
	old = await store.meters.add(Meter(installed_at=date(2015, 1, 1), is_active=False))
	new = await store.meters.add(Meter(installed_at=date(2024, 1, 1), is_active=True))
	await store.stays.add(stay(member, date(2023, 12, 1), date(2023, 12, 3), 4000, 4100, old, members=2))

	result = await validator.validate(candidate(member.id, arrival_reading=10, departure_reading=20, meter_id=new.id))
	assert result.accepted


@pytest.mark.asyncio
async def test_edited_stay_is_left_out_of_its_own_history(store, validator, member):
	existing = await store.stays.add(stay(member, date(2024, 6, 1), date(2024, 6, 2), 1000, 1010))

	result = await validator.validate(candidate(
		member.id, arrival_reading=1000, departure_reading=1012, stay_id=existing.id
	))
	assert result.accepted


def test_counter_overlap_is_symmetric():
	assert overlaps(10, 20, 15, 25) and overlaps(15, 25, 10, 20)
	assert overlaps(10, 30, 15, 20) and overlaps(15, 20, 10, 30)
	assert not overlaps(10, 20, 20, 30)
	assert not overlaps(20, 30, 10, 20)


@pytest.mark.asyncio
async def test_overlapping_stays_are_reported_once(store, member, other_member):
	own = [
		await store.stays.add(stay(member, date(2024, 6, 1), date(2024, 6, 2), 100, 120)),
		await store.stays.add(stay(member, date(2024, 6, 5), date(2024, 6, 6), 130, 150)),
	]
	wide = await store.stays.add(stay(other_member, date(2024, 6, 1), date(2024, 6, 6), 110, 140, members=5))
	apart = await store.stays.add(stay(other_member, date(2024, 6, 8), date(2024, 6, 9), 150, 160))

	found = find_overlapping_stays(own, [wide, apart, wide] + own)
	assert [s.id for s in found] == [wide.id]


@pytest.mark.asyncio
async def test_stay_across_a_swap_overlaps_only_after_the_swap(store, member, other_member):
	old = await store.meters.add(Meter(installed_at=utc(2020, 1, 1), is_active=False, carryover_reading=1400))
	new = await store.meters.add(Meter(installed_at=utc(2024, 5, 2), is_active=True))
	across = await store.stays.add(stay(
		other_member, date(2024, 5, 1), date(2024, 5, 3), 1380, 20, old, members=2,
		departure_meter_id=new.id,
	))
	during = await store.stays.add(stay(member, date(2024, 5, 2), date(2024, 5, 3), 10, 25, new))
	after = await store.stays.add(stay(member, date(2024, 5, 4), date(2024, 5, 5), 20, 40, new))

	assert [s.id for s in find_overlapping_stays([during], [across])] == [across.id]
	assert find_overlapping_stays([after], [across]) == []
