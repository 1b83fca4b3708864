from fuelshare.models.user import User, UserRole
from fuelshare.models.meter import Meter
from fuelshare.models.fuel_fill import FuelFill
from fuelshare.models.stay import Stay
from fuelshare.models.price_table import PriceTable
from fuelshare.models.annual_closing import AnnualClosing

__all__ = ["User", "UserRole", "Meter", "FuelFill", "Stay", "PriceTable", "AnnualClosing"]
