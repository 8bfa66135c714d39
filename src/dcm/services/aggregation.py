from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Iterator, Optional, Sequence

from dcm.domain.models import CollectionEntry, SessionFilter
from dcm.domain.payments import calculate_amount
from dcm.domain.timestamps import end_of_day, start_of_day, to_datetime


@dataclass(frozen=True)
class CalculatedEntry:
    entry: CollectionEntry
    amount: float
    less_add: Optional[float]
    net_milk: Optional[float]


@dataclass(frozen=True)
class CollectionTotals:
    quantity: float = 0.0
    fat: float = 0.0
    less_add: float = 0.0
    net_milk: float = 0.0
    amount: float = 0.0
    count: int = 0

    @property
    def average_fat(self) -> float:
        # Plain mean of fat readings, not weighted by quantity.
        return self.fat / self.count if self.count > 0 else 0.0


def filter_by_date_range(
    entries: Iterable[CollectionEntry], lower: date | datetime, upper: date | datetime
) -> list[CollectionEntry]:
    start = start_of_day(lower)
    end = end_of_day(upper)
    return [e for e in entries if start <= to_datetime(e.date) <= end]


def filter_by_day(entries: Iterable[CollectionEntry], day: date | datetime) -> list[CollectionEntry]:
    if isinstance(day, datetime):
        day = day.date()
    return [e for e in entries if to_datetime(e.date).date() == day]


def select_sessions(
    morning: Sequence[CollectionEntry],
    evening: Sequence[CollectionEntry],
    session_filter: SessionFilter | str = SessionFilter.BOTH,
) -> list[CollectionEntry]:
    """Morning rows then evening rows, in fetch order. No chronological merge."""
    session_filter = SessionFilter(session_filter)
    out: list[CollectionEntry] = []
    if session_filter in (SessionFilter.BOTH, SessionFilter.MORNING):
        out.extend(morning)
    if session_filter in (SessionFilter.BOTH, SessionFilter.EVENING):
        out.extend(evening)
    return out


def calculated_rows(entries: Iterable[CollectionEntry]) -> Iterator[CalculatedEntry]:
    for e in entries:
        calc = calculate_amount(e.milk_type, e.weight, e.fat, e.snf, e.rate)
        yield CalculatedEntry(entry=e, amount=calc.amount, less_add=calc.less_add, net_milk=calc.net_milk)


def summarize(entries: Iterable[CollectionEntry]) -> CollectionTotals:
    quantity = fat = less_add = net_milk = amount = 0.0
    count = 0
    for row in calculated_rows(entries):
        quantity += row.entry.weight
        fat += row.entry.fat
        less_add += row.less_add or 0.0
        net_milk += row.net_milk if row.net_milk is not None else row.entry.weight
        amount += row.amount
        count += 1
    return CollectionTotals(
        quantity=quantity,
        fat=fat,
        less_add=less_add,
        net_milk=net_milk,
        amount=amount,
        count=count,
    )
