import pytest
from datetime import date
from decimal import Decimal
from openpyxl import load_workbook

from fuelshare.core.exceptions import AnnualClosingExists, DataIntegrityWarning
from fuelshare.models import Meter, PriceTable
from fuelshare.services.annual_aggregator import can_edit_year, is_year_closed
from tests.fakes import fill, stay, utc


@pytest.mark.parametrize("year, today, closed", [
	(2024, date(2024, 6, 15), False),
	(2023, date(2024, 1, 31), False),
	(2023, date(2024, 2, 1), True),
	(2022, date(2024, 1, 1), True),
	(2025, date(2024, 6, 15), False),
])
def test_year_closes_in_february_of_the_following_year(year, today, closed):
	assert is_year_closed(year, today, closing_month=2) is closed


def test_administrators_can_edit_closed_years():
	assert can_edit_year(2020, is_admin=True, today=date(2024, 6, 15))
	assert not can_edit_year(2020, is_admin=False, today=date(2024, 6, 15))


@pytest.fixture
async def season(store, member, other_member, exempt_member, meter: Meter):
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
	await store.stays.add(stay(member, date(2024, 5, 1), date(2024, 5, 3), 1360, 1375, meter, members=2, guests=1))
	await store.stays.add(stay(other_member, date(2024, 6, 1), date(2024, 6, 2), 1375, 1380, meter))
	await store.stays.add(stay(exempt_member, date(2024, 6, 5), date(2024, 6, 6), 1380, 1390, meter))
	await store.stays.add(stay(member, date(2023, 8, 1), date(2023, 8, 2), 1200, 1210, meter))


@pytest.mark.asyncio
async def test_summary_rolls_up_stays_of_the_year(services, season):
	summary = await services.aggregator.summarize_year(2024)

	assert summary.stay_count == 3
	assert summary.fill_count == 1
	assert summary.burner_hours == 30
	assert summary.monthly_hours[4] == 15
	assert summary.monthly_hours[5] == 15
	assert summary.total_cost == summary.fuel_cost + summary.lodging_cost
	assert summary.fuel_cost == sum(s.fuel_cost for s in summary.stays)
	# exempt household pays fuel only
	rate = 280 / 550
	assert summary.cost_per_user["founder"] == Decimal(repr(10 * rate * 1.35)).quantize(Decimal("0.01"))
	assert summary.cost_per_user["keller"] == Decimal("3.44") + Decimal("13.00")
	assert not summary.closed


@pytest.mark.asyncio
async def test_summary_for_one_household(services, season, member):
	summary = await services.aggregator.summarize_year(2024, user_id=member.id)

	assert summary.stay_count == 1
	assert list(summary.cost_per_user) == ["berger"]


@pytest.mark.asyncio
async def test_year_is_closed_only_once(store, services, season):
	closing = await services.aggregator.close_year(2024)

	assert closing.stay_count == 3
	assert closing.counter_delta == 30
	assert (await services.aggregator.get_closing(2024)).id == closing.id
	assert (await services.aggregator.summarize_year(2024)).closed

	with pytest.raises(AnnualClosingExists):
		await services.aggregator.close_year(2024)


@pytest.mark.asyncio
async def test_export_contains_stays_and_summary(services, season):
	output = await services.export.export_year(2024)
	workbook = load_workbook(output)

	assert workbook.sheetnames == ["Stays 2024", "Summary"]
	stays_sheet = workbook["Stays 2024"]
	assert stays_sheet.max_row == 4
	assert stays_sheet["A1"].value == "Household"
	assert workbook["Summary"]["B1"].value == 2024


@pytest.mark.asyncio
async def test_flagged_stay_is_summarized_with_its_warning(store, services, season, other_member, meter: Meter):
	flagged = await store.stays.add(stay(
		other_member, date(2024, 6, 7), date(2024, 6, 8), 1390, 1400, meter,
		departure_meter_id=None, needs_meter_review=True,
	))

	with pytest.warns(DataIntegrityWarning):
		summary = await services.aggregator.summarize_year(2024)

	assert summary.stay_count == 4
	assert summary.burner_hours == 40
	cost = next(c for c in summary.stays if c.stay_id == flagged.id)
	assert cost.burner_hours == 10
	assert cost.fuel_cost > 0
	assert "awaits correction" in cost.warnings[0]

	with pytest.warns(DataIntegrityWarning):
		output = await services.export.export_year(2024)
	assert load_workbook(output)["Stays 2024"].max_row == 5
