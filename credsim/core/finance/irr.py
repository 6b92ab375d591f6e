# credsim/core/finance/irr.py
"""
NPV and IRR for a fixed installment annuity and for an explicit cash-flow schedule.

Both IRR flavours share one Newton-Raphson routine started at 1% per period.
Results are periodic (monthly) rates; the public IRR functions report them in
PERCENT, the solve_* functions return the raw RootResult with a converged flag.
"""

from __future__ import annotations

import decimal
from collections.abc import Callable, Sequence
from decimal import Decimal, localcontext
from typing import Literal

from credsim.core.errors import (
    ArithmeticHazardError,
    InvalidArgumentError,
    NonConvergenceError,
    finance_error_guard,
)
from credsim.core.log import get_logger
from credsim.schemas.models import RootResult

from .precision import FINANCE_CONTEXT, HUNDRED, ONE, ZERO, Number, round_half_up, to_decimal

logger = get_logger(__name__)

INITIAL_GUESS = Decimal("0.01")
FIXED_MAX_ITERATIONS = 100
FIXED_TOLERANCE = 1e-6
SCHEDULE_MAX_ITERATIONS = 100
SCHEDULE_TOLERANCE = 1e-5

Evaluator = Callable[[Decimal], tuple[Decimal, Decimal]]


def _newton_raphson(
    evaluate: Evaluator,
    *,
    tolerance: Decimal,
    max_iterations: int,
    stop_on_residual: bool,
    zero_derivative: Literal["stop", "raise"],
) -> RootResult:
    """
    Newton-Raphson on NPV(r) = 0.

    Stopping rules, checked in order each iteration:
      - |NPV(r)| < tol (only if stop_on_residual)   → converged at r
      - derivative flat:
          zero_derivative="stop":  |NPV'(r)| < tol  → return r, not converged
          zero_derivative="raise": NPV'(r) == 0     → ArithmeticHazardError
      - r_new <= -1 (no growth factor left)         → return r, not converged ("diverged")
      - |r_new - r| < tol                           → converged at r_new
    Exhausting max_iterations returns the last r, not converged. A guess whose
    discount factors overflow the working context also stops as "diverged".
    """
    guess = INITIAL_GUESS
    for i in range(max_iterations):
        try:
            f, df = evaluate(guess)
        except decimal.Overflow:
            logger.debug("newton: discount factors overflow at rate %s", guess)
            return RootResult(rate=guess, iterations=i, converged=False, stop_reason="diverged")

        if stop_on_residual and abs(f) < tolerance:
            return RootResult(rate=guess, iterations=i, converged=True, stop_reason="residual")

        if zero_derivative == "stop" and abs(df) < tolerance:
            return RootResult(rate=guess, iterations=i, converged=False, stop_reason="flat_derivative")
        if zero_derivative == "raise" and df == 0:
            raise ArithmeticHazardError(f"IRR derivative is zero at rate {guess}; Newton step undefined")

        try:
            new_guess = guess - f / df
        except decimal.Overflow:
            new_guess = None
        if new_guess is None or new_guess <= -ONE:
            logger.debug("newton: step from %s lands at %s, at or below -100%%", guess, new_guess)
            return RootResult(rate=guess, iterations=i, converged=False, stop_reason="diverged")
        if abs(new_guess - guess) < tolerance:
            return RootResult(rate=new_guess, iterations=i + 1, converged=True, stop_reason="step")
        guess = new_guess

    return RootResult(rate=guess, iterations=max_iterations, converged=False, stop_reason="max_iter")


def _report(result: RootResult, label: str, *, strict: bool) -> None:
    if result.converged:
        return
    msg = f"{label} did not converge ({result.stop_reason} after {result.iterations} iterations); last estimate {result.rate}"
    logger.warning(msg)
    if strict:
        raise NonConvergenceError(msg, result)


def _check_term(term_months: int) -> None:
    if term_months <= 0:
        raise InvalidArgumentError(f"term_months must be > 0, got {term_months}")


# =========================
# Fixed annuity
# =========================


def npv_fixed(payment: Number, discount_rate: Number, term_months: int, initial_investment: Number) -> Decimal:
    """
    NPV = initial_investment + Σ_{t=1..n} payment / (1 + d)^t, rounded to cents.

    Pass the outlay as a negative initial_investment (e.g. -principal) for the lender view.
    """
    _check_term(term_months)
    pmt = to_decimal(payment, name="payment")
    d = to_decimal(discount_rate, name="discount_rate")
    with localcontext(FINANCE_CONTEXT), finance_error_guard("npv_fixed"):
        npv = to_decimal(initial_investment, name="initial_investment")
        growth = ONE + d
        for t in range(1, term_months + 1):
            npv += pmt / growth**t
        return round_half_up(npv, 2)


def solve_irr_fixed(
    payment: Number,
    principal: Number,
    term_months: int,
    max_iterations: int = FIXED_MAX_ITERATIONS,
    tolerance: float | Decimal = FIXED_TOLERANCE,
) -> RootResult:
    """Newton-Raphson on f(r) = -principal + Σ payment/(1+r)^t; returns the raw periodic rate."""
    _check_term(term_months)
    pmt = to_decimal(payment, name="payment")
    p = to_decimal(principal, name="principal")
    tol = to_decimal(tolerance, name="tolerance")

    def evaluate(r: Decimal) -> tuple[Decimal, Decimal]:
        f = -p
        df = ZERO
        growth = ONE + r
        for t in range(1, term_months + 1):
            f += pmt / growth**t
            df += -t * pmt / growth ** (t + 1)
        return f, df

    with localcontext(FINANCE_CONTEXT), finance_error_guard("irr_fixed"):
        return _newton_raphson(
            evaluate,
            tolerance=tol,
            max_iterations=max_iterations,
            stop_on_residual=False,
            zero_derivative="stop",
        )


def irr_fixed(
    payment: Number,
    principal: Number,
    term_months: int,
    max_iterations: int = FIXED_MAX_ITERATIONS,
    tolerance: float | Decimal = FIXED_TOLERANCE,
    *,
    strict: bool = False,
) -> Decimal:
    """
    Periodic IRR of a level annuity, in percent rounded to 4 decimals (ROUND_HALF_UP).

    Non-convergence returns the best estimate (and logs a warning) unless strict=True,
    which raises NonConvergenceError instead.
    """
    result = solve_irr_fixed(payment, principal, term_months, max_iterations, tolerance)
    _report(result, "irr_fixed", strict=strict)
    with localcontext(FINANCE_CONTEXT):
        return round_half_up(result.rate * HUNDRED, 4)


# =========================
# Explicit cash-flow schedule
# =========================


def npv_schedule(cash_flows: Sequence[Number], discount_rate: Number) -> Decimal:
    """
    NPV = Σ_{i=0..N} cash_flows[i] / (1 + d)^i, rounded to cents.

    Index 0 is undiscounted, so the initial flow belongs at cash_flows[0].
    """
    d = to_decimal(discount_rate, name="discount_rate")
    flows = [to_decimal(cf, name="cash flow") for cf in cash_flows]
    with localcontext(FINANCE_CONTEXT), finance_error_guard("npv_schedule"):
        growth = ONE + d
        factor = ONE
        npv = ZERO
        for i, flow in enumerate(flows):
            if i:
                factor *= growth
            npv += flow / factor
        return round_half_up(npv, 2)


def solve_irr_schedule(
    cash_flows: Sequence[Number],
    max_iterations: int = SCHEDULE_MAX_ITERATIONS,
    tolerance: float | Decimal = SCHEDULE_TOLERANCE,
) -> RootResult:
    """
    Newton-Raphson on NPV(r) = Σ flow_t/(1+r)^t with NPV'(r) = Σ -t·flow_t/(1+r)^(t+1).

    Raises:
        InvalidArgumentError:  empty schedule.
        ArithmeticHazardError: the derivative hits exactly zero (e.g. all flows at t=0).
    """
    flows = [to_decimal(cf, name="cash flow") for cf in cash_flows]
    if not flows:
        raise InvalidArgumentError("cash_flows must not be empty")
    tol = to_decimal(tolerance, name="tolerance")

    def evaluate(r: Decimal) -> tuple[Decimal, Decimal]:
        growth = ONE + r
        denominator = ONE
        npv = ZERO
        d_npv = ZERO
        for t, flow in enumerate(flows):
            if t:
                denominator *= growth
            npv += flow / denominator
            d_npv -= t * flow / (denominator * growth)
        return npv, d_npv

    with localcontext(FINANCE_CONTEXT), finance_error_guard("irr_schedule"):
        return _newton_raphson(
            evaluate,
            tolerance=tol,
            max_iterations=max_iterations,
            stop_on_residual=True,
            zero_derivative="raise",
        )


def irr_schedule(
    cash_flows: Sequence[Number],
    max_iterations: int = SCHEDULE_MAX_ITERATIONS,
    tolerance: float | Decimal = SCHEDULE_TOLERANCE,
    *,
    strict: bool = False,
) -> Decimal:
    """
    Periodic IRR of an explicit cash-flow sequence, in percent rounded to 6 decimals.

    Example:
        irr_schedule([-100, 0, 121])  → ~10.0 (121 / 1.1^2 = 100)
    """
    result = solve_irr_schedule(cash_flows, max_iterations, tolerance)
    _report(result, "irr_schedule", strict=strict)
    with localcontext(FINANCE_CONTEXT):
        return round_half_up(result.rate * HUNDRED, 6)
