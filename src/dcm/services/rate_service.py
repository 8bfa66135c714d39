from __future__ import annotations

import logging

from dcm.domain.errors import ValidationError
from dcm.domain.models import MilkType, Rates

log = logging.getLogger(__name__)


class RateService:
    def __init__(self, repo):
        self.repo = repo

    def get_rates(self) -> Rates:
        return self.repo.get_rates()

    def rate_for(self, milk_type: MilkType) -> float:
        return self.repo.get_rates().for_milk_type(MilkType(milk_type))

    def update_rates(self, vlc_rate: float, thekadari_rate: float) -> None:
        if not (vlc_rate >= 0 and thekadari_rate >= 0):
            raise ValidationError("Rates must be >= 0.")
        # Existing entries keep the rate they were recorded with.
        self.repo.update_rates(float(vlc_rate), float(thekadari_rate))
        log.info("rates_updated vlc=%.2f thekadari=%.2f", float(vlc_rate), float(thekadari_rate))
