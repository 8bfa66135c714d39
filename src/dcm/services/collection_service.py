from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from dcm.domain.errors import ValidationError
from dcm.domain.models import CollectionEntry, Farmer, MilkType, PaymentResult, Session
from dcm.domain.payments import calculate_amount, current_session
from dcm.services.pagination import fetch_all_pages

log = logging.getLogger("dcm.collections")


@dataclass(frozen=True)
class CollectionPreview:
    farmer: Farmer
    weight: float
    fat: float
    snf: Optional[float]
    rate: float
    session: Session
    payment: PaymentResult


def _is_positive(value: Optional[float]) -> bool:
    return value is not None and not math.isnan(float(value)) and float(value) > 0


def _validate_measurement(milk_type: MilkType, weight: float, fat: float, snf: Optional[float]) -> Optional[float]:
    if not _is_positive(weight) or not _is_positive(fat):
        raise ValidationError("Weight and fat must be > 0.")
    if milk_type == MilkType.VLC:
        if not _is_positive(snf):
            raise ValidationError("SNF is required for VLC milk and must be > 0.")
        return float(snf)
    return None


class CollectionService:
    def __init__(self, repo, max_pages: int | None = None):
        self.repo = repo
        self.max_pages = max_pages

    def preview(
        self,
        farmer_id: int,
        weight: float,
        fat: float,
        snf: Optional[float] = None,
        session: Session | None = None,
    ) -> CollectionPreview:
        farmer = self.repo.get_farmer(int(farmer_id))
        snf = _validate_measurement(farmer.milk_type, weight, fat, snf)
        rate = self.repo.get_rates().for_milk_type(farmer.milk_type)
        return CollectionPreview(
            farmer=farmer,
            weight=float(weight),
            fat=float(fat),
            snf=snf,
            rate=rate,
            session=Session(session) if session is not None else current_session(),
            payment=calculate_amount(farmer.milk_type, float(weight), float(fat), snf, rate),
        )

    def record_entry(
        self,
        farmer_id: int,
        weight: float,
        fat: float,
        snf: Optional[float] = None,
        session: Session | None = None,
    ) -> CollectionPreview:
        """Store an entry at today's rate for the farmer's milk type.

        The rate is copied into the entry, so later rate changes never
        reprice it.
        """
        p = self.preview(farmer_id, weight, fat, snf, session)
        entry_id = self.repo.add_collection_entry(p.farmer.customer_id, p.weight, p.fat, p.snf, p.rate, p.session)
        log.info(
            "collection_recorded entry_id=%s farmer_id=%s session=%s weight=%.2f amount=%.2f",
            entry_id,
            p.farmer.customer_id,
            p.session.value,
            p.weight,
            p.payment.amount,
        )
        return p

    def update_entry(
        self,
        entry: CollectionEntry,
        weight: float,
        fat: float,
        snf: Optional[float] = None,
        session: Session | None = None,
    ) -> None:
        snf = _validate_measurement(entry.milk_type, weight, fat, snf)
        rate = self.repo.get_rates().for_milk_type(entry.milk_type)
        self.repo.update_collection_entry(
            entry.farmer_id,
            entry.id,
            float(weight),
            float(fat),
            snf,
            rate,
            Session(session) if session is not None else entry.session,
            entry.milk_type,
        )
        log.info("collection_updated entry_id=%s farmer_id=%s rate=%.2f", entry.id, entry.farmer_id, rate)

    def session_entries(self, session: Session, page: int = 0) -> list[CollectionEntry]:
        return self.repo.get_all_collections_for_session(Session(session), int(page))

    def all_for_session(self, session: Session) -> list[CollectionEntry]:
        return fetch_all_pages(
            lambda page: self.repo.get_all_collections_for_session(Session(session), page),
            max_pages=self.max_pages,
        )

    def all_for_farmer(self, farmer_id: int) -> list[CollectionEntry]:
        return fetch_all_pages(
            lambda page: self.repo.get_paginated_collections(int(farmer_id), page),
            max_pages=self.max_pages,
        )
