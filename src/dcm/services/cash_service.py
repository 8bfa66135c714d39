from __future__ import annotations

import logging
from typing import Optional

from dcm.domain.errors import ValidationError
from dcm.domain.models import Transaction
from dcm.services.pagination import fetch_all_pages

log = logging.getLogger("dcm.cash")

PAY = "pay"
RECEIVE = "receive"


def signed_amount(kind: str, amount: float) -> float:
    """Payments to the farmer are stored negative, cash received positive."""
    if kind not in (PAY, RECEIVE):
        raise ValidationError(f"Unknown transaction type: {kind}")
    if not amount > 0:
        raise ValidationError("Amount must be > 0.")
    return -float(amount) if kind == PAY else float(amount)


def default_description(kind: str) -> str:
    return "Cash payment" if kind == PAY else "Cash received"


def balance_label(balance: float) -> str:
    return "Amount Due" if balance < 0 else "Credit Balance"


class CashService:
    def __init__(self, repo, max_pages: int | None = None):
        self.repo = repo
        self.max_pages = max_pages

    def record(self, farmer_id: int, kind: str, amount: float, comment: Optional[str] = None) -> int:
        value = signed_amount(kind, amount)
        description = (comment or "").strip() or default_description(kind)
        txn_id = self.repo.add_transaction(int(farmer_id), description, value)
        log.info("cash_%s txn_id=%s farmer_id=%s amount=%.2f", kind, txn_id, farmer_id, value)
        return txn_id

    def pay(self, farmer_id: int, amount: float, comment: Optional[str] = None) -> int:
        return self.record(farmer_id, PAY, amount, comment)

    def receive(self, farmer_id: int, amount: float, comment: Optional[str] = None) -> int:
        return self.record(farmer_id, RECEIVE, amount, comment)

    def update(self, farmer_id: int, transaction_id: int, kind: str, amount: float, comment: Optional[str] = None) -> None:
        value = signed_amount(kind, amount)
        description = (comment or "").strip() or default_description(kind)
        self.repo.update_transaction(int(farmer_id), int(transaction_id), description, value)
        log.info("cash_updated txn_id=%s farmer_id=%s amount=%.2f", transaction_id, farmer_id, value)

    def balance(self, farmer_id: int) -> float:
        return self.repo.get_farmer_balance(int(farmer_id))

    def history(self, farmer_id: int, page: int = 0) -> list[Transaction]:
        return self.repo.get_farmer_transactions(int(farmer_id), int(page))

    def full_history(self, farmer_id: int) -> list[Transaction]:
        return fetch_all_pages(
            lambda page: self.repo.get_farmer_transactions(int(farmer_id), page),
            max_pages=self.max_pages,
        )
