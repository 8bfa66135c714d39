from .models import (
    CollectionEntry,
    Farmer,
    InventoryEntry,
    MilkType,
    PaymentResult,
    ProductSale,
    Rates,
    Session,
    SessionFilter,
    Transaction,
)
from .errors import (
    ValidationError,
    NotFoundError,
    InsufficientStockError,
    BackendError,
    PaginationLimitError,
)

__all__ = [
    "CollectionEntry",
    "Farmer",
    "InventoryEntry",
    "MilkType",
    "PaymentResult",
    "ProductSale",
    "Rates",
    "Session",
    "SessionFilter",
    "Transaction",
    "ValidationError",
    "NotFoundError",
    "InsufficientStockError",
    "BackendError",
    "PaginationLimitError",
]
