import logging
from decimal import Decimal
from typing import List, Optional

from fuelshare.models.price_table import PriceTable
from fuelshare.repositories.base import PriceTableRepository
from fuelshare.schemas.price import PriceTableResponse

logger = logging.getLogger(__name__)

# Prices used when an administrator never entered any for a year.
# Consumers rely on these exact values.
FALLBACK_PRICE_PER_LITER = Decimal("1.01")
FALLBACK_MEMBER_RATE = Decimal("5")
FALLBACK_GUEST_RATE = Decimal("10")
FALLBACK_CONSUMPTION_RATE = 5.5


def fallback_price_table(year: int) -> PriceTableResponse:
	return PriceTableResponse(
		year=year,
		member_rate=FALLBACK_MEMBER_RATE,
		guest_rate=FALLBACK_GUEST_RATE,
		price_per_liter=FALLBACK_PRICE_PER_LITER,
		consumption_rate=FALLBACK_CONSUMPTION_RATE,
		is_computed=False,
		is_fallback=True,
	)


class PriceService:
	def __init__(self, prices: PriceTableRepository):
		self.prices = prices

	async def get_price_table(self, year: int) -> PriceTableResponse:
		"""Price table of a year, or the fallback prices when none was entered"""
		table = await self.prices.get_price_table(year)
		if table is None:
			logger.debug(f"No price table for {year}, using fallback prices")
			return fallback_price_table(year)
		return PriceTableResponse.model_validate(table)

	async def list_price_tables(self) -> List[PriceTableResponse]:
		tables = await self.prices.list_price_tables()
		return [PriceTableResponse.model_validate(t) for t in tables]

	async def set_lodging_rates(
			self,
			year: int,
			member_rate: Decimal,
			guest_rate: Decimal,
			price_per_liter: Optional[Decimal] = None
	) -> PriceTableResponse:
		"""Administrator override of the nightly rates (and optionally the oil price) of a year"""
		table = await self.prices.get_price_table(year)
		if table is None:
			table = PriceTable(
				year=year,
				member_rate=member_rate,
				guest_rate=guest_rate,
				price_per_liter=price_per_liter if price_per_liter is not None else FALLBACK_PRICE_PER_LITER,
				consumption_rate=FALLBACK_CONSUMPTION_RATE,
				is_computed=False,
			)
			await self.prices.add(table)
		else:
			table.member_rate = member_rate
			table.guest_rate = guest_rate
			if price_per_liter is not None:
				table.price_per_liter = price_per_liter

		logger.info(f"Lodging rates for {year} set to member={member_rate} guest={guest_rate}")
		return PriceTableResponse.model_validate(table)
