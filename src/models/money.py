"""
Money helpers.

All amounts in the ledger are Decimals with two decimal places.
Floats only appear at the UI edge and are converted through to_amount().
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Union

from pydantic import Field


CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Strictly positive amount (expenses, obligations)
PositiveAmount = Annotated[Decimal, Field(gt=0, decimal_places=2)]

# Zero or more (opening balances, card dues)
NonNegativeAmount = Annotated[Decimal, Field(ge=0, decimal_places=2)]

# Signed balance as stored on a payment source
SignedAmount = Annotated[Decimal, Field(decimal_places=2)]


def to_amount(value: Union[Decimal, float, int, str]) -> Decimal:
    """Convert a UI value to a two-place Decimal."""
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except InvalidOperation as e:
        raise ValueError(f"Not an amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not an amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_inr(amount: Union[Decimal, float, int], show_symbol: bool = True) -> str:
    """
    Format an amount using Indian digit grouping.

    1234567.5 -> "₹12,34,567.50"
    """
    value = to_amount(amount)
    is_negative = value < 0
    integer_part, decimal_part = f"{abs(value):.2f}".split(".")

    last_three = integer_part[-3:]
    other_numbers = integer_part[:-3]

    groups = []
    while len(other_numbers) > 2:
        groups.insert(0, other_numbers[-2:])
        other_numbers = other_numbers[:-2]
    if other_numbers:
        groups.insert(0, other_numbers)

    formatted = ",".join(groups + [last_three])
    symbol = "₹" if show_symbol else ""
    sign = "-" if is_negative else ""
    return f"{sign}{symbol}{formatted}.{decimal_part}"
