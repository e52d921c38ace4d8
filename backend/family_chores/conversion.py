"""Price <-> points conversion.

Integer points are canonical.  Prices are converted through ``Decimal``
built from the string form of the value so binary float noise such as
``0.285 * 100 == 28.499999999999996`` never changes a rounding result.
``to_price`` output is for presentation only and must never be fed back
into a ledger computation.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

from family_chores.errors import InvalidInput, InvalidRate

Number = Union[Decimal, float, int, str]

CENT = Decimal("0.01")


def _to_decimal(value: Number, label: str) -> Decimal:
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"Invalid {label}: {value!r}")
    if not result.is_finite():
        raise InvalidInput(f"Invalid {label}: {value!r}")
    return result


def validate_rate(rate: Number) -> Decimal:
    """Return ``rate`` as a Decimal, raising :class:`InvalidRate` unless > 0."""
    try:
        value = _to_decimal(rate, "rate")
    except InvalidInput:
        raise InvalidRate(f"Invalid conversion rate: {rate!r}")
    if value <= 0:
        raise InvalidRate(f"Conversion rate must be greater than zero, got {rate}")
    return value


def validate_price(price: Number) -> Decimal:
    value = _to_decimal(price, "price")
    if value < 0:
        raise InvalidInput(f"Price must be non-negative, got {price}")
    return value


def to_points(price: Number, rate: Number) -> int:
    """Convert a price to points, rounding half away from zero.

    >>> to_points(100, 10)
    1000
    >>> to_points("12.35", 10)
    124
    """
    value = validate_price(price) * validate_rate(rate)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def to_price(points: int, rate: Number) -> Decimal:
    """Exact currency value of ``points`` at ``rate`` (not rounded)."""
    return Decimal(int(points)) / validate_rate(rate)


def format_price(points: int, rate: Number) -> str:
    """Fixed-point display string with two decimals, e.g. ``'12.50'``."""
    return f"{to_price(points, rate).quantize(CENT, rounding=ROUND_HALF_UP):.2f}"


def price_to_points_preview(price: Number | None, rate: Number) -> int | None:
    """Points cost shown next to a wishlist item; ``None`` when unpriced."""
    if price is None:
        return None
    return to_points(price, rate)
