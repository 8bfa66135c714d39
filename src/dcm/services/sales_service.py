from __future__ import annotations

import logging
from typing import Optional

from dcm.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from dcm.domain.models import ProductSale

log = logging.getLogger(__name__)


class SalesService:
    def __init__(self, repo):
        self.repo = repo

    def _validate(self, product_name: str, quantity: float, price_per_unit: float) -> str:
        name = (product_name or "").strip()
        if not name:
            raise ValidationError("Product is required.")
        if not quantity > 0 or not price_per_unit > 0:
            raise ValidationError("Quantity and price must be > 0.")
        return name

    def _stock(self, product_name: str) -> float:
        for entry in self.repo.get_all_inventory():
            if entry.product_name == product_name:
                return entry.quantity_in_stock
        raise NotFoundError(f"Product '{product_name}' not found.")

    def record_sale(
        self, farmer_id: Optional[int], product_name: str, quantity: float, price_per_unit: float
    ) -> int:
        """
        farmer_id=None records a walk-in sale. A farmer sale is also
        debited to the farmer's account.
        """
        name = self._validate(product_name, quantity, price_per_unit)
        available = self._stock(name)
        if quantity > available:
            raise InsufficientStockError(f"Not enough stock for {name}. Available: {available:g}")
        if farmer_id is not None:
            self.repo.get_farmer(int(farmer_id))

        sale_id = self.repo.add_product_sale(
            int(farmer_id) if farmer_id is not None else None, name, float(quantity), float(price_per_unit)
        )
        log.info(
            "product_sale sale_id=%s farmer_id=%s product=%s qty=%s total=%.2f",
            sale_id,
            farmer_id,
            name,
            quantity,
            float(quantity) * float(price_per_unit),
        )
        return sale_id

    def update_sale(
        self, sale_id: int, farmer_id: Optional[int], product_name: str, quantity: float, price_per_unit: float
    ) -> None:
        name = self._validate(product_name, quantity, price_per_unit)
        if farmer_id is not None:
            self.repo.get_farmer(int(farmer_id))
        self.repo.update_product_sale(
            int(sale_id), int(farmer_id) if farmer_id is not None else None, name, float(quantity), float(price_per_unit)
        )
        log.info("product_sale_updated sale_id=%s product=%s qty=%s", sale_id, name, quantity)

    def list_sales(self) -> list[ProductSale]:
        return self.repo.get_all_product_sales()
