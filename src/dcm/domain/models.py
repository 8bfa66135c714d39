from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MilkType(str, Enum):
    VLC = "vlc"
    THEKADARI = "thekadari"


class Session(str, Enum):
    MORNING = "morning"
    EVENING = "evening"


class SessionFilter(str, Enum):
    MORNING = "morning"
    EVENING = "evening"
    BOTH = "both"


@dataclass(frozen=True)
class Farmer:
    customer_id: int
    name: str
    phone: str
    milk_type: MilkType


@dataclass(frozen=True)
class CollectionEntry:
    id: int
    farmer_id: int
    weight: float
    fat: float
    snf: Optional[float]
    rate: float
    date: int
    session: Session
    milk_type: MilkType


@dataclass(frozen=True)
class Transaction:
    id: int
    farmer_id: int
    description: str
    amount: float
    timestamp: int


@dataclass(frozen=True)
class InventoryEntry:
    product_name: str
    quantity_in_stock: float


@dataclass(frozen=True)
class ProductSale:
    id: int
    farmer_id: Optional[int]
    product_name: str
    quantity: float
    price_per_unit: float
    total_amount: float
    timestamp: int


@dataclass(frozen=True)
class Rates:
    vlc: float
    thekadari: float

    def for_milk_type(self, milk_type: MilkType) -> float:
        return self.vlc if milk_type == MilkType.VLC else self.thekadari


@dataclass(frozen=True)
class PaymentResult:
    amount: float
    less_add: Optional[float] = None
    net_milk: Optional[float] = None
