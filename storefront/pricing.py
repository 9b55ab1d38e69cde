"""Pricing engine.

Turns a stored base price and markup percentage into the price shown to
customers:

1. ``subtotal = base_price / 100``
2. ``with_markup = subtotal * (100 + markup_factor)``
3. round UP to the nearest hundredth (seller keeps the fraction)
4. multiply by the currency coefficient and round to two places
   with standard half-up rounding
5. format with a comma decimal separator

Steps 3 and 4 round differently on purpose; prices shown to customers
depend on it.
"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_CEILING, ROUND_HALF_UP
from typing import Union

from storefront.errors import InvalidPrice

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float, str]

HUNDRED = Decimal("100")
CENTS = Decimal("0.01")


def to_decimal(value: Number, name: str = "price") -> Decimal:
    """
    Parse untrusted numeric input.

    Accepts ints, floats, Decimals and strings; a comma decimal separator
    is accepted in strings ("12,50").

    Raises:
        InvalidPrice: If the value is not a finite, non-negative number
    """
    if isinstance(value, bool) or value is None:
        raise InvalidPrice(f"{name} must be a number")

    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, (int, float)):
            # str() keeps float input at its shortest repr
            result = Decimal(str(value))
        elif isinstance(value, str):
            result = Decimal(value.strip().replace(",", "."))
        else:
            raise InvalidPrice(f"{name} must be a number")
    except InvalidOperation:
        raise InvalidPrice(f"{name} must be a number, got {value!r}")

    if not result.is_finite():
        raise InvalidPrice(f"{name} must be finite, got {value!r}")
    if result < 0:
        raise InvalidPrice(f"{name} must be >= 0, got {value!r}")
    return result


def parse_amount(value: Number, name: str = "price") -> Decimal:
    """Parse a stored amount (price or markup) fixed to two decimal places."""
    try:
        return to_decimal(value, name).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidPrice(f"{name} is out of range, got {value!r}")


def parse_coefficient(value: Number) -> Decimal:
    """
    Parse a currency coefficient and fix it to two decimal places.

    Raises:
        InvalidPrice: If the coefficient is not a positive number
    """
    coefficient = parse_amount(value, "currency coefficient")
    if coefficient <= 0:
        raise InvalidPrice(f"currency coefficient must be > 0, got {value!r}")
    return coefficient


def compute_total_price(base_price: Number, markup_factor: Number) -> Decimal:
    """
    Base price with markup, rounded up to the hundredth.

    This is the ``price_total`` every catalog product carries, before
    currency conversion.
    """
    base = to_decimal(base_price, "base price")
    markup = to_decimal(markup_factor, "markup factor")

    subtotal = base / HUNDRED
    with_markup = subtotal * (HUNDRED + markup)
    cents = (with_markup * HUNDRED).to_integral_value(rounding=ROUND_CEILING)
    return (cents / HUNDRED).quantize(CENTS)


def convert_price(total_price: Number, currency_coefficient: Number) -> Decimal:
    """Apply the currency coefficient to an already rounded total."""
    total = to_decimal(total_price, "total price")
    coefficient = to_decimal(currency_coefficient, "currency coefficient")
    return (total * coefficient).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_display_price(
    base_price: Number,
    markup_factor: Number,
    currency_coefficient: Number
) -> Decimal:
    """
    Compute the customer-facing price.

    Args:
        base_price: Stored product price
        markup_factor: Markup percentage
        currency_coefficient: Display currency multiplier

    Returns:
        Display price with exactly two decimal places

    Raises:
        InvalidPrice: If any argument is malformed
    """
    total = compute_total_price(base_price, markup_factor)
    return convert_price(total, currency_coefficient)


def format_price(amount: Number) -> str:
    """Format an amount with two decimals and a comma separator."""
    value = to_decimal(amount, "amount").quantize(CENTS, rounding=ROUND_HALF_UP)
    return f"{value:.2f}".replace(".", ",")


def display_price(
    base_price: Number,
    markup_factor: Number,
    currency_coefficient: Number
) -> str:
    """Compute and format the customer-facing price in one step."""
    return format_price(compute_display_price(base_price, markup_factor, currency_coefficient))
