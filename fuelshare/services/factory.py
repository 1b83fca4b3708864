from dataclasses import dataclass
from datetime import date
from typing import Callable

from fuelshare.repositories.base import Repositories
from fuelshare.services.annual_aggregator import AnnualAggregator
from fuelshare.services.cost_allocation import CostAllocationEngine
from fuelshare.services.export_service import ExportService
from fuelshare.services.fuel_fill_series import FuelFillSeries
from fuelshare.services.meter_ledger import MeterLedger
from fuelshare.services.price_service import PriceService
from fuelshare.services.rate_resolver import RateResolver
from fuelshare.services.stay_service import StayService
from fuelshare.services.stay_validator import StayValidator


@dataclass
class Services:
	prices: PriceService
	resolver: RateResolver
	engine: CostAllocationEngine
	ledger: MeterLedger
	validator: StayValidator
	aggregator: AnnualAggregator
	fills: FuelFillSeries
	stays: StayService
	export: ExportService


def build_services(repos: Repositories, today: Callable[[], date] = date.today) -> Services:
	"""Wire the services of one request onto the request's repositories"""
	prices = PriceService(repos.prices)
	resolver = RateResolver(repos.fills, prices)
	engine = CostAllocationEngine(resolver, prices, repos.meters)
	ledger = MeterLedger(repos.meters, repos.stays)
	validator = StayValidator(repos.stays, today=today)
	aggregator = AnnualAggregator(repos, engine, prices, today=today)
	return Services(
		prices=prices,
		resolver=resolver,
		engine=engine,
		ledger=ledger,
		validator=validator,
		aggregator=aggregator,
		fills=FuelFillSeries(repos.fills, repos.meters, aggregator, resolver, today=today),
		stays=StayService(repos, validator, ledger, engine, today=today),
		export=ExportService(repos, aggregator),
	)
