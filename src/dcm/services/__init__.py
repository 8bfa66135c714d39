from .farmer_service import FarmerService
from .collection_service import CollectionService
from .cash_service import CashService
from .inventory_service import InventoryService
from .sales_service import SalesService
from .rate_service import RateService
from .reporting_service import ReportingService

__all__ = [
    "FarmerService",
    "CollectionService",
    "CashService",
    "InventoryService",
    "SalesService",
    "RateService",
    "ReportingService",
]
