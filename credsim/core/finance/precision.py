# credsim/core/finance/precision.py
"""Decimal working context and rounding helpers shared by the finance modules."""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Context, Decimal

from credsim.core.errors import InvalidArgumentError

# 34 significant digits (IEEE 754 decimal128)
FINANCE_CONTEXT = Context(prec=34, rounding=ROUND_HALF_EVEN)

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

Number = Decimal | int | float | str


def to_decimal(value: Number, *, name: str = "value") -> Decimal:
    """Coerce an input to Decimal; floats go through str() so 0.1 stays 0.1."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be numeric, got bool")
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except ArithmeticError as e:
            raise InvalidArgumentError(f"{name} is not a number: {value!r}") from e
    else:
        raise InvalidArgumentError(f"{name} must be numeric, got {type(value).__name__}")

    if not result.is_finite():
        raise InvalidArgumentError(f"{name} must be finite, got {value!r}")
    return result


def round_half_up(value: Decimal, places: int) -> Decimal:
    """Quantize to `places` decimals with ROUND_HALF_UP (presentation rounding)."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
