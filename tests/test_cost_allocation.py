import pytest
from datetime import date
from decimal import Decimal

from fuelshare.core.exceptions import DataIntegrityWarning
from fuelshare.models import Meter, PriceTable
from fuelshare.services.cost_allocation import (
	allocate_lodging_cost,
	count_nights,
	resolve_skip_lodging,
	round_money,
)
from tests.fakes import fill, stay, utc


@pytest.fixture
async def priced_meter(store, meter: Meter) -> Meter:
	await store.fills.add(fill(meter, utc(2022, 3, 15), 250, "1.05", 800))
	await store.fills.add(fill(meter, utc(2024, 4, 20), 280, "1.35", 1350))
	await store.prices.add(PriceTable(
		year=2024,
		member_rate=Decimal("13"),
		guest_rate=Decimal("22"),
		price_per_liter=Decimal("1.01"),
		consumption_rate=5.5,
		is_computed=False,
	))
	return meter


def test_round_money_is_half_up():
	assert round_money(10.305) == Decimal("10.31")
	assert round_money(2.675) == Decimal("2.68")
	assert round_money(Decimal("0.004")) == Decimal("0.00")


def test_nights_count_calendar_days():
	assert count_nights(date(2024, 6, 1), date(2024, 6, 3)) == 2


def test_lodging_cost_per_night_and_person():
	assert allocate_lodging_cost(2, 1, 1, Decimal("13"), Decimal("22")) == Decimal("70.00")
	assert allocate_lodging_cost(3, 3, 0, 5, 10) == Decimal("45.00")


def test_stay_flag_overrides_user_exemption():
	assert resolve_skip_lodging(None, True) is True
	assert resolve_skip_lodging(None, False) is False
	assert resolve_skip_lodging(False, True) is False
	assert resolve_skip_lodging(True, False) is True


@pytest.mark.asyncio
async def test_fuel_cost_after_last_fill(services, priced_meter: Meter):
	cost = await services.engine.allocate_fuel_cost(1360, 1375, priced_meter.id, 2024)
	assert cost == Decimal("10.31")


@pytest.mark.asyncio
async def test_fuel_cost_of_empty_range_is_zero(services, priced_meter: Meter):
	assert await services.engine.allocate_fuel_cost(1375, 1360, priced_meter.id, 2024) == Decimal("0.00")


@pytest.mark.asyncio
async def test_stay_cost_combines_fuel_and_lodging(services, member, priced_meter: Meter):
	record = stay(member, date(2024, 5, 1), date(2024, 5, 3), 1360, 1375, priced_meter, members=1, guests=1)

	cost = await services.engine.stay_cost(record)

	assert cost.nights == 2
	assert cost.burner_hours == 15
	assert cost.fuel_cost == Decimal("10.31")
	assert cost.lodging_cost == Decimal("70.00")
	assert cost.total_cost == Decimal("80.31")
	assert not cost.lodging_skipped
	assert cost.warnings == []


@pytest.mark.asyncio
async def test_exempt_household_pays_no_lodging(services, member, priced_meter: Meter):
	record = stay(member, date(2024, 5, 1), date(2024, 5, 3), 1360, 1375, priced_meter, members=1, guests=1)

	exempt = await services.engine.stay_cost(record, user_exempt=True)
	assert exempt.lodging_cost == Decimal("0.00")
	assert exempt.lodging_skipped

	record.skip_lodging = True
	flagged = await services.engine.stay_cost(record)
	assert flagged.lodging_cost == Decimal("0.00")
	assert flagged.fuel_cost == Decimal("10.31")


@pytest.mark.asyncio
async def test_stay_cost_is_repeatable(services, member, priced_meter: Meter):
	record = stay(member, date(2024, 5, 1), date(2024, 5, 2), 1340, 1360, priced_meter)

	first = await services.engine.stay_cost(record)
	second = await services.engine.stay_cost(record)

	assert first == second
	assert len(first.segments) == 2


@pytest.mark.asyncio
async def test_stay_across_meter_swap_is_split_at_carryover(store, services, member):
	old = await store.meters.add(Meter(
		installed_at=utc(2015, 1, 1), removed_at=utc(2024, 5, 2), is_active=False, carryover_reading=1400
	))
	new = await store.meters.add(Meter(installed_at=utc(2024, 5, 2), is_active=True))
	record = stay(member, date(2024, 5, 1), date(2024, 5, 4), 1380, 20, members=3)
	record.arrival_meter_id = old.id
	record.departure_meter_id = new.id

	with pytest.warns(DataIntegrityWarning):
		cost = await services.engine.stay_cost(record)

	assert [(s.start, s.end) for s in cost.segments] == [(1380, 1400), (0, 20)]
	assert cost.burner_hours == 40
	assert len(cost.warnings) == 1


@pytest.mark.asyncio
async def test_stay_awaiting_meter_review_is_priced_on_arrival_meter(store, services, member, priced_meter: Meter):
	record = stay(member, date(2024, 5, 1), date(2024, 5, 3), 1360, 1375, priced_meter, members=2)
	record.departure_meter_id = None
	record.needs_meter_review = True

	with pytest.warns(DataIntegrityWarning):
		cost = await services.engine.stay_cost(record)

	assert cost.fuel_cost == Decimal("10.31")
	assert "awaits correction" in cost.warnings[0]
