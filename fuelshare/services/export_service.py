from __future__ import annotations

import io
import logging
from typing import Dict, Optional
from uuid import UUID

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, NamedStyle, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from fuelshare.repositories.base import Repositories
from fuelshare.services.annual_aggregator import AnnualAggregator, YearSummary

logger = logging.getLogger(__name__)

STAY_HEADERS = [
	("Household", 25),
	("Arrival", 14),
	("Departure", 14),
	("Counter start", 15),
	("Counter end", 15),
	("Burner hours", 14),
	("Nights", 10),
	("Members", 10),
	("Guests", 10),
	("Fuel (EUR)", 14),
	("Lodging (EUR)", 14),
	("Total (EUR)", 14),
	("Notes", 50),
]

THIN_BORDER = Border(
	left=Side(style='thin'),
	right=Side(style='thin'),
	top=Side(style='thin'),
	bottom=Side(style='thin')
)


class ExportService:
	def __init__(self, repos: Repositories, aggregator: AnnualAggregator):
		self.repos = repos
		self.aggregator = aggregator

	def _draw_stay_header(self, worksheet: Worksheet) -> None:
		for col, (title, width) in enumerate(STAY_HEADERS, start=1):
			cell = worksheet.cell(row=1, column=col, value=title)
			cell.font = Font(bold=True)
			cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
			cell.border = THIN_BORDER
			worksheet.column_dimensions[cell.column_letter].width = width
		worksheet.row_dimensions[1].height = 30

	async def export_year(self, year: int, user_id: Optional[UUID] = None) -> io.BytesIO:
		"""Yearly cost report as an Excel workbook; returns a BytesIO positioned at the start"""
		summary = await self.aggregator.summarize_year(year, user_id=user_id)
		stays = {s.id: s for s in await self.repos.stays.list_all_stays(year=year)}
		names: Dict[UUID, str] = {}

		wb = Workbook()
		ws = wb.active
		ws.title = f"Stays {year}"
		self._draw_stay_header(ws)

		money_style = NamedStyle(name="money_style")
		money_style.number_format = "#,##0.00"
		date_style = NamedStyle(name="date_style")
		date_style.number_format = "dd.mm.yyyy"
		for st in (money_style, date_style):
			if st.name not in wb.named_styles:
				wb.add_named_style(st)

		for row_idx, cost in enumerate(summary.stays, start=2):
			stay = stays.get(cost.stay_id)
			if stay is None:
				continue
			if stay.user_id not in names:
				user = await self.repos.users.get(stay.user_id)
				names[stay.user_id] = user.username if user is not None else str(stay.user_id)

			values = [
				names[stay.user_id],
				stay.arrival,
				stay.departure,
				stay.arrival_reading,
				stay.departure_reading,
				cost.burner_hours,
				cost.nights,
				stay.members,
				stay.guests,
				float(cost.fuel_cost),
				float(cost.lodging_cost),
				float(cost.total_cost),
				"; ".join(cost.warnings),
			]
			for col, value in enumerate(values, start=1):
				cell = ws.cell(row=row_idx, column=col, value=value)
				cell.border = THIN_BORDER
				if col in (2, 3):
					cell.style = "date_style"
				elif col in (10, 11, 12):
					cell.style = "money_style"

		if summary.stays:
			ws.auto_filter.ref = f"A1:M{len(summary.stays) + 1}"
		ws.freeze_panes = "A2"

		self._add_summary_sheet(wb, summary)

		out = io.BytesIO()
		wb.save(out)
		out.seek(0)
		logger.info(f"Exported {len(summary.stays)} stays of {year}")
		return out

	def _add_summary_sheet(self, wb: Workbook, summary: YearSummary) -> None:
		ws = wb.create_sheet(title="Summary")
		ws.column_dimensions["A"].width = 30
		ws.column_dimensions["B"].width = 18

		rows = [
			("Year", summary.year),
			("Stays", summary.stay_count),
			("Fuel fills", summary.fill_count),
			("Burner hours", summary.burner_hours),
			("Consumption (L/h)", round(summary.consumption_rate, 3)),
			("Consumption computed", "yes" if summary.rate_is_computed else "no (fallback)"),
			("Fuel cost (EUR)", float(summary.fuel_cost)),
			("Lodging cost (EUR)", float(summary.lodging_cost)),
			("Total cost (EUR)", float(summary.total_cost)),
			("Closed", "yes" if summary.closed else "no"),
		]
		for row_idx, (label, value) in enumerate(rows, start=1):
			ws.cell(row=row_idx, column=1, value=label).font = Font(bold=True)
			ws.cell(row=row_idx, column=2, value=value)

		start = len(rows) + 2
		ws.cell(row=start, column=1, value="Household").font = Font(bold=True)
		ws.cell(row=start, column=2, value="Total (EUR)").font = Font(bold=True)
		for offset, (name, total) in enumerate(sorted(summary.cost_per_user.items()), start=1):
			ws.cell(row=start + offset, column=1, value=name)
			ws.cell(row=start + offset, column=2, value=float(total)).number_format = "#,##0.00"
