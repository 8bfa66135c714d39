from datetime import date, datetime

import pytest

from dcm.domain.models import CollectionEntry, MilkType, Session, SessionFilter
from dcm.domain.timestamps import from_datetime, to_datetime
from dcm.services.aggregation import (
    calculated_rows,
    filter_by_date_range,
    filter_by_day,
    select_sessions,
    summarize,
)


def _entry(entry_id, when, weight=10.0, fat=4.0, snf=8.5, rate=50.0, session=Session.MORNING, milk_type=MilkType.VLC):
    return CollectionEntry(
        id=entry_id,
        farmer_id=1,
        weight=weight,
        fat=fat,
        snf=snf,
        rate=rate,
        date=from_datetime(when),
        session=session,
        milk_type=milk_type,
    )


def test_nanosecond_timestamps_are_read_as_milliseconds():
    when = datetime(2024, 3, 10, 7, 45, 12, 345000)
    ns = from_datetime(when)
    assert ns % 1_000_000 == 0
    assert to_datetime(ns) == when
    assert to_datetime(ns + 999_999) == when


def test_date_range_includes_last_millisecond_of_upper_day():
    last = _entry(1, datetime(2024, 3, 10, 23, 59, 59, 999000))
    next_day = _entry(2, datetime(2024, 3, 11, 0, 0, 0))
    first = _entry(3, datetime(2024, 3, 1, 0, 0, 0))
    before = _entry(4, datetime(2024, 2, 29, 23, 59, 59, 999000))

    kept = filter_by_date_range([last, next_day, first, before], date(2024, 3, 1), date(2024, 3, 10))

    assert [e.id for e in kept] == [1, 3]


def test_date_range_bounds_ignore_time_of_day():
    e = _entry(1, datetime(2024, 3, 1, 5, 0))
    assert filter_by_date_range([e], datetime(2024, 3, 1, 18, 0), datetime(2024, 3, 1, 1, 0)) == [e]


def test_filter_by_day():
    a = _entry(1, datetime(2024, 3, 1, 5, 0))
    b = _entry(2, datetime(2024, 3, 2, 5, 0))
    assert filter_by_day([a, b], date(2024, 3, 2)) == [b]


def test_both_sessions_are_concatenated_morning_first_without_sorting():
    evening_early = _entry(1, datetime(2024, 3, 1, 18, 0), session=Session.EVENING)
    morning_late = _entry(2, datetime(2024, 3, 2, 6, 0))

    both = select_sessions([morning_late], [evening_early], SessionFilter.BOTH)

    assert [e.id for e in both] == [2, 1]
    assert select_sessions([morning_late], [evening_early], "evening") == [evening_early]
    assert select_sessions([morning_late], [evening_early], SessionFilter.MORNING) == [morning_late]


def test_average_fat_is_not_weighted_by_quantity():
    entries = [
        _entry(1, datetime(2024, 3, 1, 6), weight=1, fat=3.0),
        _entry(2, datetime(2024, 3, 1, 6), weight=100, fat=4.0),
        _entry(3, datetime(2024, 3, 1, 6), weight=7, fat=5.0),
    ]
    assert summarize(entries).average_fat == pytest.approx(4.0)


def test_totals_mix_vlc_and_thekadari():
    vlc = _entry(1, datetime(2024, 3, 1, 6), weight=10, fat=4.0, snf=8.5, rate=50)
    thek = _entry(2, datetime(2024, 3, 1, 6), weight=20, fat=70, snf=None, rate=40, milk_type=MilkType.THEKADARI)

    totals = summarize([vlc, thek])

    assert totals.count == 2
    assert totals.quantity == pytest.approx(30)
    assert totals.less_add == pytest.approx(1.5)
    # VLC contributes its weight, Thekadari its net milk
    assert totals.net_milk == pytest.approx(10 + 21.5)
    assert totals.amount == pytest.approx(860 + 10 * ((4.0 * 50 * 6 / 650) + (8.5 * 50 * 4 / 900)))


def test_empty_totals():
    totals = summarize([])
    assert totals.count == 0
    assert totals.average_fat == 0.0
    assert totals.amount == 0.0


def test_calculated_rows_keep_absence_for_vlc():
    rows = list(calculated_rows([_entry(1, datetime(2024, 3, 1, 6))]))
    assert rows[0].less_add is None
    assert rows[0].net_milk is None
