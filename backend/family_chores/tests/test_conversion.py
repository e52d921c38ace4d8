"""Tests for price <-> points conversion."""

import pathlib
import sys
from decimal import Decimal

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from family_chores.conversion import (
    format_price,
    price_to_points_preview,
    to_points,
    to_price,
)
from family_chores.errors import InvalidInput, InvalidRate


def test_price_to_points_at_default_rate():
    assert to_points(100, 10) == 1000
    assert to_points("12.35", 10) == 124
    assert price_to_points_preview(None, 10) is None


def test_rounding_is_half_up_without_float_noise():
    # 0.285 * 100 is 28.4999... in binary floating point
    assert to_points(0.285, 100) == 29
    assert to_points("0.125", 4) == 1
    assert to_points("0.124", 4) == 0


def test_non_positive_rate_is_rejected():
    for rate in (0, -1, "0"):
        with pytest.raises(InvalidRate):
            to_points(10, rate)
        with pytest.raises(InvalidRate):
            to_price(10, rate)
    with pytest.raises(InvalidRate):
        to_points(10, float("nan"))


def test_negative_or_garbage_price_is_rejected():
    with pytest.raises(InvalidInput):
        to_points(-1, 10)
    with pytest.raises(InvalidInput):
        to_points("ten", 10)


def test_display_price_has_two_decimals():
    assert format_price(1000, 10) == "100.00"
    assert format_price(125, 10) == "12.50"
    assert format_price(1, 3) == "0.33"
    assert to_price(5, 2) == Decimal("2.5")


def test_round_trip_stays_within_half_a_point():
    for rate in (Decimal("0.5"), Decimal("3"), Decimal("10"), Decimal("7.5")):
        for cents in range(0, 2000, 37):
            price = Decimal(cents) / 100
            back = to_price(to_points(price, rate), rate)
            # Decimal division is exact to 28 digits
            assert abs(back - price) <= Decimal("0.5") / rate + Decimal("1e-20")
