"""Money helpers

All credit and order amounts are exact decimals quantized to cents, matching
the DECIMAL(14,2) columns they are stored in. Floats are only accepted at the
parsing edge and are converted through their string form.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

MONEY_PRECISION = 14
MONEY_SCALE = 2
CENT = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyInput = Union[Decimal, int, str, float, None]


def to_money(value: MoneyInput) -> Decimal:
    """Convert a payload or database value to a cent-quantized Decimal.

    None and empty strings resolve to ZERO. Raises ValueError for values that
    are not numbers.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f"Not a money value: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return ZERO
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Not a money value: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not a money value: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    return f"${to_money(value):,.2f}"
