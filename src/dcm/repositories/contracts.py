from __future__ import annotations

from typing import Optional, Protocol

from dcm.domain.models import (
    CollectionEntry,
    Farmer,
    InventoryEntry,
    MilkType,
    ProductSale,
    Rates,
    Session,
    Transaction,
)


class DairyBackend(Protocol):
    """Persistence operations used by the services.

    Paged reads return at most ``page_size`` items; an empty list means
    there is nothing past the previous page.
    """

    page_size: int

    # Farmers
    def get_farmer(self, farmer_id: int) -> Farmer: ...
    def get_all_farmers(self) -> list[Farmer]: ...
    def add_farmer(self, name: str, phone: str, milk_type: MilkType) -> int: ...
    def update_farmer_details(self, farmer_id: int, name: str, phone: str, milk_type: MilkType, new_id: int) -> None: ...

    # Collections
    def get_all_collections_for_session(self, session: Session, page: int) -> list[CollectionEntry]: ...
    def get_paginated_collections(self, farmer_id: int, page: int) -> list[CollectionEntry]: ...
    def add_collection_entry(
        self, farmer_id: int, weight: float, fat: float, snf: Optional[float], rate: float, session: Session
    ) -> int: ...
    def update_collection_entry(
        self,
        farmer_id: int,
        entry_id: int,
        weight: float,
        fat: float,
        snf: Optional[float],
        rate: float,
        session: Session,
        milk_type: MilkType,
    ) -> None: ...

    # Transactions
    def get_farmer_balance(self, farmer_id: int) -> float: ...
    def get_farmer_transactions(self, farmer_id: int, page: int) -> list[Transaction]: ...
    def add_transaction(self, farmer_id: int, description: str, amount: float) -> int: ...
    def update_transaction(self, farmer_id: int, transaction_id: int, description: str, amount: float) -> None: ...

    # Inventory
    def get_all_inventory(self) -> list[InventoryEntry]: ...
    def add_inventory_entry(self, product_name: str, quantity: float) -> None: ...
    def update_inventory(self, product_name: str, delta_quantity: float) -> None: ...

    # Product sales
    def get_all_product_sales(self) -> list[ProductSale]: ...
    def add_product_sale(
        self, farmer_id: Optional[int], product_name: str, quantity: float, price_per_unit: float
    ) -> int: ...
    def update_product_sale(
        self, sale_id: int, farmer_id: Optional[int], product_name: str, quantity: float, price_per_unit: float
    ) -> None: ...

    # Rates
    def get_rates(self) -> Rates: ...
    def update_rates(self, vlc_rate: float, thekadari_rate: float) -> None: ...
