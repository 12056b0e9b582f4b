"""
Module: dealership_kernel.db.types
Responsibility: Annotated column type aliases and the money helpers every
    model and service shares, so precision and rounding are defined once.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere in the kernel.  Monetary amounts are Decimal.
    - round_money() is the only sanctioned rounding function for prices,
      costs, discounts and profit.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum as PyEnum
from typing import Annotated

from sqlalchemy import Enum, Numeric, String

# Monetary amount: 38 digits total, 9 decimal places in storage
Money = Annotated[Decimal, Numeric(38, 9)]

# Short identifier strings (codes, numbers)
ShortCode = Annotated[str, String(50)]

# Names and labels
Name = Annotated[str, String(255)]

# Long text for descriptions and notes
LongText = Annotated[str, String(4000)]

# Single currency; amounts are presented with two decimal places
MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def status_enum(enum_cls: type[PyEnum]) -> Enum:
    """
    Column type for a str-valued Enum, stored as VARCHAR of its values.

    Rows load back as enum members, never bare strings.
    """
    return Enum(
        enum_cls,
        native_enum=False,
        length=20,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
    )


def to_money(value: Decimal | int | str) -> Decimal:
    """
    Coerce an int, str or Decimal to Decimal.

    Raises:
        ValueError: If value is a float or not a valid number.
    """
    if isinstance(value, float):
        raise ValueError("Monetary amounts must not be floats")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid monetary amount: {value!r}") from exc


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    Example:
        round_money(Decimal("600000.005")) -> Decimal("600000.01")
    """
    quantizer = Decimal(10) ** -decimal_places
    return value.quantize(quantizer, rounding=rounding)
