"""
Module: erp_kernel.db.types
Responsibility: Annotated column types and the money/quantity helpers used by
    every model, service and selector.  Centralizes precision, rounding and
    numeric coercion of driver values so that no other module quantizes or parses
    numbers on its own.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Money is Numeric(18, 2); tax rates are percentages in Numeric(9, 4).
    - round_money() is the ONLY sanctioned rounding function.  Rounding
      happens per line at computation time, never at display time.
    - No floats: coerce_money() converts driver values (str, int, float,
      Decimal, None) into Decimal before any arithmetic.

Failure modes:
    - ValueError from coerce_money()/coerce_quantity() when a value is not
      numeric at all (e.g. "abc").
"""

from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from sqlalchemy import Numeric, String

# Monetary amount: 18 digits, 2 decimal places
Money = Annotated[Decimal, Numeric(18, 2)]

# Percentage tax rate, e.g. 17.5000
Rate = Annotated[Decimal, Numeric(9, 4)]

# Company partition key
CompanyCode = Annotated[str, String(20)]

# Master-data and document codes
ShortCode = Annotated[str, String(50)]

# Descriptions and remarks
LongText = Annotated[str, String(1000)]


MONEY_DECIMAL_PLACES = 2
RATE_DECIMAL_PLACES = 4
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0.00")

ROUNDING_MODES: dict[str, str] = {
    "half_up": ROUND_HALF_UP,
    "half_even": ROUND_HALF_EVEN,
}


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to ``decimal_places``.

    Preconditions: value is a Decimal.
    Postconditions: Returns value quantized with the given rounding mode.
    """
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def coerce_money(value: Any) -> Decimal:
    """
    Convert a stored or driver-returned numeric value into a 2dp Decimal.

    None and empty strings become zero.  Floats go through ``str`` so that
    0.1 stays 0.1.

    Raises:
        ValueError: If value is not numeric.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, float):
        dec = Decimal(repr(value))
    else:
        try:
            dec = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a numeric amount: {value!r}") from exc
    if not dec.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return round_money(dec)


def coerce_quantity(value: Any) -> int:
    """Convert a stored or driver-returned quantity into an int (None -> 0)."""
    if value is None or value == "":
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(Decimal(str(value).strip()))
    except InvalidOperation as exc:
        raise ValueError(f"Not a numeric quantity: {value!r}") from exc


def rounding_mode(name: str) -> str:
    """Resolve a configured rounding-mode name ('half_up', 'half_even')."""
    try:
        return ROUNDING_MODES[name]
    except KeyError:
        raise ValueError(
            f"Unknown rounding mode {name!r}; expected one of {sorted(ROUNDING_MODES)}"
        ) from None
