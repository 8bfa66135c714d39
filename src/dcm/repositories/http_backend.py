from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar
from urllib.parse import quote

import requests

from dcm.config import DEFAULT_PAGE_SIZE
from dcm.domain.errors import BackendError, InsufficientStockError, NotFoundError, ValidationError
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

log = logging.getLogger(__name__)

T = TypeVar("T")


def _opt_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def _opt_int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


class HttpBackend:
    """JSON-over-HTTP client for a remote dairy data service."""

    def __init__(
        self,
        base_url: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.page_size = int(page_size)
        self.timeout = float(timeout)
        self.http = session or requests.Session()

    def _request(self, method: str, path: str, params: dict | None = None, payload: dict | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            r = self.http.request(method, url, params=params, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            log.warning("backend_request_failed method=%s url=%s error=%s", method, url, e)
            raise BackendError(f"{method} {path} failed: {e}") from e

        if r.status_code == 404:
            raise NotFoundError(self._detail(r) or f"Not found: {path}")
        if r.status_code == 409:
            raise InsufficientStockError(self._detail(r) or "Not enough stock.")
        if r.status_code in (400, 422):
            raise ValidationError(self._detail(r) or "Invalid request.")

        try:
            r.raise_for_status()
        except requests.HTTPError as e:
            log.warning("backend_http_error method=%s url=%s status=%s", method, url, r.status_code)
            raise BackendError(f"{method} {path} returned {r.status_code}") from e

        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            log.warning("backend_invalid_json method=%s url=%s", method, url)
            raise BackendError(f"{method} {path} returned invalid JSON") from e

    @staticmethod
    def _decode(what: str, parse: Callable[[Any], T], data: Any) -> T:
        try:
            return parse(data)
        except (KeyError, TypeError, ValueError) as e:
            log.warning("backend_malformed_response what=%s error=%r", what, e)
            raise BackendError(f"Malformed {what} in backend response: {e!r}") from e

    @staticmethod
    def _detail(r: requests.Response) -> str:
        try:
            body = r.json()
        except ValueError:
            return ""
        if isinstance(body, dict):
            return str(body.get("detail", ""))
        return ""

    # ---------- Parsing ----------
    @staticmethod
    def _farmer(d: dict) -> Farmer:
        return Farmer(
            customer_id=int(d["customer_id"]),
            name=str(d["name"]),
            phone=str(d["phone"]),
            milk_type=MilkType(d["milk_type"]),
        )

    @staticmethod
    def _collection(d: dict) -> CollectionEntry:
        return CollectionEntry(
            id=int(d["id"]),
            farmer_id=int(d["farmer_id"]),
            weight=float(d["weight"]),
            fat=float(d["fat"]),
            snf=_opt_float(d.get("snf")),
            rate=float(d["rate"]),
            date=int(d["date"]),
            session=Session(d["session"]),
            milk_type=MilkType(d["milk_type"]),
        )

    @staticmethod
    def _transaction(d: dict) -> Transaction:
        return Transaction(
            id=int(d["id"]),
            farmer_id=int(d["farmer_id"]),
            description=str(d["description"]),
            amount=float(d["amount"]),
            timestamp=int(d["timestamp"]),
        )

    @staticmethod
    def _sale(d: dict) -> ProductSale:
        return ProductSale(
            id=int(d["id"]),
            farmer_id=_opt_int(d.get("farmer_id")),
            product_name=str(d["product_name"]),
            quantity=float(d["quantity"]),
            price_per_unit=float(d["price_per_unit"]),
            total_amount=float(d["total_amount"]),
            timestamp=int(d["timestamp"]),
        )

    # ---------- Farmers ----------
    def get_farmer(self, farmer_id: int) -> Farmer:
        return self._decode("farmer", self._farmer, self._request("GET", f"/farmers/{int(farmer_id)}"))

    def get_all_farmers(self) -> list[Farmer]:
        rows = self._request("GET", "/farmers")
        return self._decode("farmers", lambda ds: [self._farmer(d) for d in ds or []], rows)

    def add_farmer(self, name: str, phone: str, milk_type: MilkType) -> int:
        data = self._request("POST", "/farmers", payload={"name": name, "phone": phone, "milk_type": MilkType(milk_type).value})
        return self._decode("id", lambda d: int(d["id"]), data)

    def update_farmer_details(self, farmer_id: int, name: str, phone: str, milk_type: MilkType, new_id: int) -> None:
        self._request(
            "PUT",
            f"/farmers/{int(farmer_id)}",
            payload={"name": name, "phone": phone, "milk_type": MilkType(milk_type).value, "new_id": int(new_id)},
        )

    # ---------- Collections ----------
    def get_all_collections_for_session(self, session: Session, page: int) -> list[CollectionEntry]:
        rows = self._request("GET", "/collections", params={"session": Session(session).value, "page": int(page)})
        return self._decode("collections", lambda ds: [self._collection(d) for d in ds or []], rows)

    def get_paginated_collections(self, farmer_id: int, page: int) -> list[CollectionEntry]:
        rows = self._request("GET", f"/farmers/{int(farmer_id)}/collections", params={"page": int(page)})
        return self._decode("collections", lambda ds: [self._collection(d) for d in ds or []], rows)

    def add_collection_entry(
        self, farmer_id: int, weight: float, fat: float, snf: Optional[float], rate: float, session: Session
    ) -> int:
        data = self._request(
            "POST",
            f"/farmers/{int(farmer_id)}/collections",
            payload={"weight": weight, "fat": fat, "snf": snf, "rate": rate, "session": Session(session).value},
        )
        return self._decode("collection id", lambda d: int(d["id"]) if d else 0, data)

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
    ) -> None:
        self._request(
            "PUT",
            f"/farmers/{int(farmer_id)}/collections/{int(entry_id)}",
            payload={
                "weight": weight,
                "fat": fat,
                "snf": snf,
                "rate": rate,
                "session": Session(session).value,
                "milk_type": MilkType(milk_type).value,
            },
        )

    # ---------- Transactions ----------
    def get_farmer_balance(self, farmer_id: int) -> float:
        data = self._request("GET", f"/farmers/{int(farmer_id)}/balance")
        return self._decode("balance", lambda d: float(d["balance"]), data)

    def get_farmer_transactions(self, farmer_id: int, page: int) -> list[Transaction]:
        rows = self._request("GET", f"/farmers/{int(farmer_id)}/transactions", params={"page": int(page)})
        return self._decode("transactions", lambda ds: [self._transaction(d) for d in ds or []], rows)

    def add_transaction(self, farmer_id: int, description: str, amount: float) -> int:
        data = self._request(
            "POST",
            f"/farmers/{int(farmer_id)}/transactions",
            payload={"description": description, "amount": amount},
        )
        return self._decode("id", lambda d: int(d["id"]), data)

    def update_transaction(self, farmer_id: int, transaction_id: int, description: str, amount: float) -> None:
        self._request(
            "PUT",
            f"/farmers/{int(farmer_id)}/transactions/{int(transaction_id)}",
            payload={"description": description, "amount": amount},
        )

    # ---------- Inventory ----------
    def get_all_inventory(self) -> list[InventoryEntry]:
        rows = self._request("GET", "/inventory")
        return self._decode(
            "inventory",
            lambda ds: [
                InventoryEntry(product_name=str(d["product_name"]), quantity_in_stock=float(d["quantity_in_stock"]))
                for d in ds or []
            ],
            rows,
        )

    def add_inventory_entry(self, product_name: str, quantity: float) -> None:
        self._request("POST", "/inventory", payload={"product_name": product_name, "quantity": quantity})

    def update_inventory(self, product_name: str, delta_quantity: float) -> None:
        self._request("PATCH", f"/inventory/{quote(product_name, safe='')}", payload={"delta": delta_quantity})

    # ---------- Product sales ----------
    def get_all_product_sales(self) -> list[ProductSale]:
        rows = self._request("GET", "/sales")
        return self._decode("sales", lambda ds: [self._sale(d) for d in ds or []], rows)

    def add_product_sale(
        self, farmer_id: Optional[int], product_name: str, quantity: float, price_per_unit: float
    ) -> int:
        data = self._request(
            "POST",
            "/sales",
            payload={
                "farmer_id": farmer_id,
                "product_name": product_name,
                "quantity": quantity,
                "price_per_unit": price_per_unit,
            },
        )
        return self._decode("id", lambda d: int(d["id"]), data)

    def update_product_sale(
        self, sale_id: int, farmer_id: Optional[int], product_name: str, quantity: float, price_per_unit: float
    ) -> None:
        self._request(
            "PUT",
            f"/sales/{int(sale_id)}",
            payload={
                "farmer_id": farmer_id,
                "product_name": product_name,
                "quantity": quantity,
                "price_per_unit": price_per_unit,
            },
        )

    # ---------- Rates ----------
    def get_rates(self) -> Rates:
        data = self._request("GET", "/rates")
        return self._decode("rates", lambda d: Rates(vlc=float(d["vlc"]), thekadari=float(d["thekadari"])), data)

    def update_rates(self, vlc_rate: float, thekadari_rate: float) -> None:
        self._request("PUT", "/rates", payload={"vlc": vlc_rate, "thekadari": thekadari_rate})
