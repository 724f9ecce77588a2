from decimal import ROUND_HALF_UP, Decimal
from typing import Union

# Type alias for money values
Money = Decimal

CENT = Decimal("0.01")


def round_money(value: Union[Decimal, float, int, str]) -> Decimal:
    """
    Round a monetary value to 2 decimal places using ROUND_HALF_UP.

    Examples:
        >>> round_money(10.125)
        Decimal('10.13')
        >>> round_money("1499.994")
        Decimal('1499.99')
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def total_cost(quantity: int, unit_cost: Union[Decimal, str]) -> Decimal:
    """Extended cost of a purchase line (quantity x unit cost), rounded to cents."""
    return round_money(Decimal(quantity) * Decimal(str(unit_cost)))
