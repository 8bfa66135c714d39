from __future__ import annotations

import logging

from dcm.domain.errors import ValidationError
from dcm.domain.models import Farmer, MilkType

log = logging.getLogger(__name__)


def _milk_type(value) -> MilkType:
    try:
        return MilkType(value)
    except ValueError as e:
        raise ValidationError(f"Unknown milk type: {value}") from e


class FarmerService:
    def __init__(self, repo):
        self.repo = repo

    def list_farmers(self) -> list[Farmer]:
        return self.repo.get_all_farmers()

    def get_farmer(self, farmer_id: int) -> Farmer:
        return self.repo.get_farmer(int(farmer_id))

    def farmer_names(self) -> dict[int, str]:
        return {f.customer_id: f.name for f in self.repo.get_all_farmers()}

    def add_farmer(self, name: str, phone: str, milk_type: MilkType | str) -> int:
        name = (name or "").strip()
        phone = (phone or "").strip()
        if not name or not phone:
            raise ValidationError("Name and phone are required.")
        farmer_id = self.repo.add_farmer(name, phone, _milk_type(milk_type))
        log.info("farmer_added farmer_id=%s milk_type=%s", farmer_id, MilkType(milk_type).value)
        return farmer_id

    def update_farmer(
        self, farmer_id: int, name: str, phone: str, milk_type: MilkType | str, new_id: int | None = None
    ) -> None:
        name = (name or "").strip()
        phone = (phone or "").strip()
        if not name or not phone:
            raise ValidationError("Name and phone are required.")
        target_id = int(farmer_id) if new_id is None else int(new_id)
        if target_id <= 0:
            raise ValidationError("Customer ID must be > 0.")
        self.repo.update_farmer_details(int(farmer_id), name, phone, _milk_type(milk_type), target_id)
        log.info("farmer_updated farmer_id=%s new_id=%s", farmer_id, target_id)
