# credsim/core/finance/engine.py
from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal, localcontext

from credsim.core.errors import ArithmeticHazardError
from credsim.core.log import get_logger
from credsim.schemas.models import (
    CompoundingPeriod,
    RateDescriptor,
    RootResult,
    SimulationInputs,
    SimulationResult,
)

from .amortization import generate_schedule, monthly_payment, schedule_cash_flows, schedule_totals
from .irr import npv_fixed, npv_schedule, solve_irr_fixed, solve_irr_schedule
from .precision import FINANCE_CONTEXT, HUNDRED, round_half_up
from .rates import convert_to_monthly, monthly_effective_rate

logger = get_logger(__name__)


def descriptor_monthly_rate(rate: RateDescriptor) -> Decimal:
    """
    TEM of a declared rate; the loan rate and the opportunity cost share this rule.

    Annual quotes go through monthly_effective_rate() (nominal rates capitalize monthly
    unless a capitalization is given); quotes for any other period go through
    convert_to_monthly() (nominal rates capitalize per the quoted period unless a
    capitalization is given).
    """
    if rate.period is CompoundingPeriod.ANNUAL:
        return monthly_effective_rate(rate.rate, rate.kind, rate.capitalization)
    return convert_to_monthly(rate.rate, rate.kind, rate.period, rate.capitalization)


def _guarded_irr(
    label: str, solve: Callable[[], RootResult], places: int, warnings: list[str]
) -> tuple[Decimal | None, bool]:
    """Run an IRR search; an undefined or unconverged result becomes a warning instead of an error."""
    try:
        root = solve()
    except ArithmeticHazardError as e:
        logger.warning("%s IRR undefined: %s", label, e)
        warnings.append(f"{label} IRR undefined ({e})")
        return None, False

    with localcontext(FINANCE_CONTEXT):
        percent = round_half_up(root.rate * HUNDRED, places)
    if not root.converged:
        logger.warning("%s IRR stopped on %s after %d iterations", label, root.stop_reason, root.iterations)
        warnings.append(f"{label} IRR did not converge ({root.stop_reason}); value is approximate")
    return percent, root.converged


def run_simulation(inputs: SimulationInputs) -> SimulationResult:
    """
    Rate conversion → installment → schedule → cash flows → NPV/IRR.

    The schedule IRR is always computed; NPV figures need an opportunity cost rate.
    """
    loan = inputs.loan
    costs = inputs.costs

    tem = descriptor_monthly_rate(loan.rate)
    payment = monthly_payment(loan.principal, tem, loan.term_months)
    logger.debug("simulation: principal=%s TEM=%s term=%d payment=%s", loan.principal, tem, loan.term_months, payment)

    schedule = generate_schedule(
        loan.principal,
        tem,
        payment,
        loan.term_months,
        loan.grace_period_months,
        loan.grace_period_type,
        costs.life_insurance_rate,
        costs.property_insurance_rate,
        costs.monthly_commissions,
        costs.administration_costs,
        costs.statement_delivery,
        costs.property_insurance_value,
        physical_delivery_fee=costs.physical_delivery_fee,
    )
    cash_flows = schedule_cash_flows(schedule, loan.principal)
    totals = schedule_totals(schedule)

    warnings: list[str] = []

    # Schedule IRR (borrower flows: +principal, then -total_payment)
    irr_percent, irr_converged = _guarded_irr("schedule", lambda: solve_irr_schedule(cash_flows), 6, warnings)
    # Base-installment IRR (level annuity, no ancillary costs)
    irr_fixed_pct, _ = _guarded_irr(
        "base installment", lambda: solve_irr_fixed(payment, loan.principal, loan.term_months), 4, warnings
    )

    cok: Decimal | None = None
    npv: Decimal | None = None
    npv_fixed_val: Decimal | None = None
    oc = inputs.opportunity_cost
    if oc is not None:
        cok = descriptor_monthly_rate(oc)
        npv = npv_schedule(cash_flows, cok)
        npv_fixed_val = npv_fixed(payment, cok, loan.term_months, -loan.principal)
        if npv < 0:
            warnings.append("loan cost exceeds the opportunity cost rate (NPV < 0)")

    return SimulationResult(
        monthly_rate=tem,
        monthly_payment=payment,
        opportunity_cost_rate=cok,
        schedule=schedule,
        cash_flows=cash_flows,
        totals=totals,
        npv=npv,
        irr_percent=irr_percent,
        irr_converged=irr_converged,
        npv_fixed=npv_fixed_val,
        irr_fixed_percent=irr_fixed_pct,
        warnings=warnings,
    )
