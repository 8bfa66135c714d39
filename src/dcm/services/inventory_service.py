from __future__ import annotations

import math

from dcm.domain.errors import ValidationError, NotFoundError
from dcm.domain.models import InventoryEntry


class InventoryService:
    def __init__(self, repo):
        self.repo = repo

    def list_inventory(self) -> list[InventoryEntry]:
        return self.repo.get_all_inventory()

    def get_entry(self, product_name: str) -> InventoryEntry:
        name = (product_name or "").strip()
        for entry in self.repo.get_all_inventory():
            if entry.product_name == name:
                return entry
        raise NotFoundError("Product not found.")

    def add_product(self, product_name: str, quantity: float) -> None:
        name = (product_name or "").strip()
        if not name:
            raise ValidationError("Product name is required.")
        if not quantity >= 0:
            raise ValidationError("Quantity must be >= 0.")
        self.repo.add_inventory_entry(name, float(quantity))

    def adjust_stock(self, product_name: str, delta: float) -> None:
        if delta == 0 or math.isnan(delta):
            raise ValidationError("Quantity change must be a non-zero number.")
        entry = self.get_entry(product_name)
        if entry.quantity_in_stock + delta < 0:
            raise ValidationError(f"Not enough stock. Available: {entry.quantity_in_stock:g}")
        self.repo.update_inventory(entry.product_name, float(delta))
