# credsim/core/finance/rates.py
"""
Rate conversion to a monthly effective rate (TEM).

All inputs are PERCENTAGES (12 means 12%); all outputs are monthly FRACTIONS
(0.009488792934583046 for 0.9489%). Exponentiation runs on Decimal at 34
significant digits, so fractional powers are never truncated to binary doubles.
"""

from __future__ import annotations

from decimal import Decimal, localcontext

from credsim.core.errors import InvalidArgumentError, finance_error_guard
from credsim.schemas.models import CompoundingPeriod, RateKind

from .precision import FINANCE_CONTEXT, HUNDRED, ONE, Number, to_decimal

_DAYS_IN_MONTH = Decimal(30)
_DAYS_IN_YEAR = Decimal(360)
_MONTHS_IN_YEAR = Decimal(12)


def days_in_period(period: CompoundingPeriod | str | None) -> int:
    """Days in a period tag (1, 15, 30, 60, 90, 180, 360). None → 30."""
    return CompoundingPeriod.parse(period).days


def capitalizations_per_year(period: CompoundingPeriod | str | None) -> int:
    """Compounding events per year (360, 24, 12, 6, 4, 2, 1). None → 12."""
    return CompoundingPeriod.parse(period).per_year


def _as_fraction(rate: Number) -> Decimal:
    return to_decimal(rate, name="rate") / HUNDRED


def _compound(base: Decimal, exponent: Decimal) -> Decimal:
    if base <= 0:
        raise InvalidArgumentError(f"rate implies a non-positive growth factor ({base}); cannot compound")
    return base**exponent - ONE


def monthly_effective_rate(
    annual_rate: Number,
    rate_kind: RateKind | str,
    period: CompoundingPeriod | str | None = None,
) -> Decimal:
    """
    Convert an ANNUAL rate into a monthly effective rate.

    EFFECTIVE:  TEM = (1 + r)^(30/360) - 1          (period is ignored)
    NOMINAL:    TEM = (1 + r/m)^(m/12) - 1          m = capitalizations per year of `period`

    Args:
        annual_rate: Annual rate in percent.
        rate_kind:   RateKind or its tag ("TE"/"TN", "effective"/"nominal").
        period:      Capitalization period for nominal rates; None means monthly.

    Raises:
        InvalidArgumentError: unknown rate kind or period, or a rate at/below -100%.
    """
    kind = RateKind.parse(rate_kind)
    with localcontext(FINANCE_CONTEXT), finance_error_guard("monthly_effective_rate"):
        r = _as_fraction(annual_rate)
        if kind is RateKind.EFFECTIVE:
            return _compound(ONE + r, _DAYS_IN_MONTH / _DAYS_IN_YEAR)

        m = Decimal(capitalizations_per_year(period))
        return _compound(ONE + r / m, m / _MONTHS_IN_YEAR)


def convert_to_monthly(
    rate: Number,
    rate_kind: RateKind | str,
    period: CompoundingPeriod | str | None = None,
    capitalization: CompoundingPeriod | str | None = None,
) -> Decimal:
    """
    Convert a rate quoted for an arbitrary `period` into a monthly effective rate.

    EFFECTIVE:  TEM = (1 + r)^(30/d) - 1            d = days in `period`
    NOMINAL:    j   = r * 360/d                     re-annualize the period rate
                TEM = (1 + j/m)^(m/12) - 1          m = capitalizations per year of
                                                    `capitalization` (or `period` if None)
    """
    kind = RateKind.parse(rate_kind)
    quoted = CompoundingPeriod.parse(period)
    with localcontext(FINANCE_CONTEXT), finance_error_guard("convert_to_monthly"):
        r = _as_fraction(rate)
        d = Decimal(quoted.days)
        if kind is RateKind.EFFECTIVE:
            return _compound(ONE + r, _DAYS_IN_MONTH / d)

        j = r * (_DAYS_IN_YEAR / d)
        cap = CompoundingPeriod.parse(capitalization) if capitalization is not None else quoted
        m = Decimal(cap.per_year)
        return _compound(ONE + j / m, m / _MONTHS_IN_YEAR)


def opportunity_cost_rate(
    rate: Number,
    rate_kind: RateKind | str,
    period: CompoundingPeriod | str | None = None,
    capitalization: CompoundingPeriod | str | None = None,
) -> Decimal:
    """Monthly opportunity cost rate (COK) used as the NPV discount rate."""
    return convert_to_monthly(rate, rate_kind, period, capitalization)
