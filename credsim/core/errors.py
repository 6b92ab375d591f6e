# credsim/core/errors.py
"""
Typed errors for the loan simulation core.

Exports
-------
- FinanceError, InvalidArgumentError, NonConvergenceError, ArithmeticHazardError
- FINANCE_ERRORS
- finance_error_guard()
"""

from __future__ import annotations

import decimal
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from credsim.schemas.models import RootResult

# =========================
# Exception types
# =========================


class FinanceError(RuntimeError):
    """Base class for loan-economics failures."""


class InvalidArgumentError(FinanceError, ValueError):
    """Unrecognized tag, non-positive term, or a structurally impossible division."""


class NonConvergenceError(FinanceError):
    """Newton-Raphson hit its iteration cap (or a flat derivative) without meeting tolerance."""

    def __init__(self, message: str, result: RootResult | None = None) -> None:
        super().__init__(message)
        self.result = result


class ArithmeticHazardError(FinanceError, ArithmeticError):
    """A zero IRR derivative or an overflowing intermediate left the calculation undefined."""


# Selector tuple for grouped exception handling
FINANCE_ERRORS = (
    InvalidArgumentError,
    NonConvergenceError,
    ArithmeticHazardError,
)


@contextmanager
def finance_error_guard(context: str) -> Iterator[None]:
    """
    Map decimal arithmetic signals raised inside a calculation to typed errors.

      - decimal.DivisionByZero / ZeroDivisionError → ArithmeticHazardError
      - decimal.Overflow (result beyond the working context) → ArithmeticHazardError
      - decimal.InvalidOperation (e.g. fractional power of a negative base) → InvalidArgumentError
      - FinanceError subclasses → passed through
    """
    try:
        yield
    except FinanceError:
        raise
    except (decimal.DivisionByZero, ZeroDivisionError) as exc:
        raise ArithmeticHazardError(f"{context}: division by zero") from exc
    except decimal.Overflow as exc:
        raise ArithmeticHazardError(f"{context}: result overflows the working precision") from exc
    except decimal.InvalidOperation as exc:
        raise InvalidArgumentError(f"{context}: invalid decimal operation") from exc


__all__ = [
    "FinanceError",
    "InvalidArgumentError",
    "NonConvergenceError",
    "ArithmeticHazardError",
    "FINANCE_ERRORS",
    "finance_error_guard",
]
