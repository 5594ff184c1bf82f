"""Sale price computation.

The result is pinned onto the sale at creation, so the function must be
pure: same inputs, same output, no catalog look-ups.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from modules.sales.exceptions import InvalidPricingInput

Number = Union[Decimal, int, str]

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def _to_decimal(value: Number, name: str) -> Decimal:
    if isinstance(value, (bool, float)):
        raise InvalidPricingInput(
            f"{name} must be a Decimal, int or str, got {type(value).__name__}."
        )
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidPricingInput(f"{name} is not a number: {value!r}.") from exc
    if not result.is_finite():
        raise InvalidPricingInput(f"{name} must be finite.")
    return result


def compute_price(base_price: Number, discount_percent: Number = 0) -> Decimal:
    """Return ``base_price * (1 - discount_percent / 100)`` rounded to cents.

    Rounding is half-up to the currency minor unit.  ``discount_percent`` is
    ``0`` when no promotion applies.

    Raises:
        InvalidPricingInput: ``base_price <= 0`` or discount outside ``[0, 100]``.

    >>> compute_price(1000, 25)
    Decimal('750.00')
    """
    base = _to_decimal(base_price, "base_price")
    discount = _to_decimal(discount_percent, "discount_percent")

    if base <= 0:
        raise InvalidPricingInput(f"base_price must be positive, got {base}.")
    if discount < 0 or discount > HUNDRED:
        raise InvalidPricingInput(
            f"discount_percent must be within [0, 100], got {discount}."
        )

    final = base * (HUNDRED - discount) / HUNDRED
    return final.quantize(CENT, rounding=ROUND_HALF_UP)
