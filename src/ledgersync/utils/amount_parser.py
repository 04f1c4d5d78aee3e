"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import re
from typing import Union

MINOR_UNITS_PER_MAJOR = 100


def parse_amount(amount: Union[str, int, float, Decimal]) -> Decimal:
    """Parse an amount into a Decimal.

    Handles numbers as they arrive from JSON (floats are converted through
    their shortest string form so 10.1 stays 10.1) and strings such as:
    - "123.45"
    - "-₪123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Raises:
        ValueError: If the amount cannot be parsed
    """
    if isinstance(amount, bool):
        raise ValueError(f"Could not parse amount '{amount}'")
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, (int, float)):
        return Decimal(str(amount))

    if not amount or not amount.strip():
        raise ValueError("Empty amount string")

    amount_str = amount.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Remove currency symbols and thousands separators
    amount_str = re.sub(r"[$€£¥₪]", "", amount_str)
    amount_str = amount_str.replace(",", "").strip()

    try:
        value = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")
    return -value if is_negative else value


def amount_to_minor_units(amount: Union[str, int, float, Decimal]) -> int:
    """Convert a major-unit amount to integer minor units (cents).

    Half cents round away from zero, so the sign of the amount is kept.
    """
    value = parse_amount(amount) * MINOR_UNITS_PER_MAJOR
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
