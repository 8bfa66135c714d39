"""Milk payment formulas.

VLC milk is paid on fat and SNF against fixed reference baselines. Thekadari
milk is paid on a net quantity adjusted by how far fat deviates from 65.
None of these functions validate their inputs; bad numbers simply produce
bad (possibly NaN) results.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from dcm.domain.models import MilkType, PaymentResult, Session

THEKADARI_FAT_REFERENCE = 65
THEKADARI_ADJUSTMENT_FACTOR = 1.5


def calculate_vlc_amount(weight: float, fat: float, snf: float, rate: float) -> float:
    return weight * ((fat * rate * 6 / 650) + (snf * rate * 4 / 900))


def calculate_thekadari_less_add(fat: float, weight: float) -> float:
    return (fat - THEKADARI_FAT_REFERENCE) * weight * THEKADARI_ADJUSTMENT_FACTOR / 100


def calculate_thekadari_net_milk(weight: float, less_add: float) -> float:
    return weight + less_add


def calculate_thekadari_amount(net_milk: float, rate: float) -> float:
    return net_milk * rate


def calculate_amount(
    milk_type: MilkType,
    weight: float,
    fat: float,
    snf: Optional[float],
    rate: float,
) -> PaymentResult:
    """
    less_add/net_milk are only set for Thekadari; None means "not applicable",
    never zero.
    """
    if MilkType(milk_type) == MilkType.VLC:
        return PaymentResult(amount=calculate_vlc_amount(weight, fat, snf or 0, rate))

    less_add = calculate_thekadari_less_add(fat, weight)
    net_milk = calculate_thekadari_net_milk(weight, less_add)
    return PaymentResult(
        amount=calculate_thekadari_amount(net_milk, rate),
        less_add=less_add,
        net_milk=net_milk,
    )


def session_for_hour(hour: int) -> Session:
    return Session.MORNING if 3 <= hour < 15 else Session.EVENING


def current_session(now: datetime | None = None) -> Session:
    return session_for_hour((now or datetime.now()).hour)


def format_less_add(value: float) -> str:
    formatted = f"{value:.2f}"
    return f"+{formatted}" if value >= 0 else formatted


def format_currency(value: float) -> str:
    return f"₹{value:.2f}"
