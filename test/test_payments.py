import math
from datetime import datetime

import pytest

from dcm.domain.models import MilkType, Session
from dcm.domain.payments import (
    calculate_amount,
    current_session,
    format_currency,
    format_less_add,
    session_for_hour,
)


@pytest.mark.parametrize(
    "weight,fat,snf,rate",
    [(10, 4.0, 8.5, 50), (1.25, 3.2, 7.9, 31.5), (100, 6.5, 9.0, 0), (0.5, 12.0, 8.0, 72.25)],
)
def test_vlc_amount_matches_fat_snf_formula(weight, fat, snf, rate):
    result = calculate_amount(MilkType.VLC, weight, fat, snf, rate)
    expected = weight * ((fat * rate * 6 / 650) + (snf * rate * 4 / 900))
    assert result.amount == pytest.approx(expected, abs=1e-9)


def test_vlc_scenario_from_collection_sheet():
    result = calculate_amount(MilkType.VLC, 10, 4.0, 8.5, 50)
    assert round(result.amount, 2) == 37.35
    assert result.less_add is None
    assert result.net_milk is None


@pytest.mark.parametrize("weight,fat,rate", [(20, 70, 40), (15, 60, 38.5), (8, 65, 42), (1, 0.5, 10)])
def test_thekadari_derived_quantities(weight, fat, rate):
    result = calculate_amount(MilkType.THEKADARI, weight, fat, None, rate)
    less_add = (fat - 65) * weight * 1.5 / 100
    assert result.less_add == pytest.approx(less_add, abs=1e-9)
    assert result.net_milk == pytest.approx(weight + less_add, abs=1e-9)
    assert result.amount == pytest.approx((weight + less_add) * rate, abs=1e-9)


def test_thekadari_scenario_with_fat_above_reference():
    result = calculate_amount(MilkType.THEKADARI, 20, 70, None, 40)
    assert result.less_add == pytest.approx(1.5)
    assert result.net_milk == pytest.approx(21.5)
    assert result.amount == pytest.approx(860)


def test_thekadari_net_milk_equals_weight_at_reference_fat():
    result = calculate_amount(MilkType.THEKADARI, 12.5, 65, None, 40)
    assert result.less_add == 0
    assert result.net_milk == 12.5


def test_thekadari_ignores_snf():
    with_snf = calculate_amount(MilkType.THEKADARI, 20, 60, 8.5, 40)
    without_snf = calculate_amount(MilkType.THEKADARI, 20, 60, None, 40)
    assert with_snf == without_snf
    assert with_snf.less_add < 0


def test_engine_does_not_raise_on_bad_numbers():
    result = calculate_amount(MilkType.VLC, float("nan"), 4.0, 8.5, 50)
    assert math.isnan(result.amount)
    negative = calculate_amount(MilkType.THEKADARI, 10, -5, None, 40)
    assert negative.amount < 0


def test_milk_type_accepts_plain_values():
    assert calculate_amount("thekadari", 20, 70, None, 40).net_milk == pytest.approx(21.5)


@pytest.mark.parametrize(
    "hour,expected",
    [(0, Session.EVENING), (2, Session.EVENING), (3, Session.MORNING), (14, Session.MORNING), (15, Session.EVENING), (23, Session.EVENING)],
)
def test_session_boundaries(hour, expected):
    assert session_for_hour(hour) == expected


def test_current_session_uses_given_time():
    assert current_session(datetime(2024, 5, 1, 6, 30)) == Session.MORNING
    assert current_session(datetime(2024, 5, 1, 18, 0)) == Session.EVENING


def test_formatters():
    assert format_less_add(1.5) == "+1.50"
    assert format_less_add(0) == "+0.00"
    assert format_less_add(-0.75) == "-0.75"
    assert format_currency(860) == "₹860.00"
