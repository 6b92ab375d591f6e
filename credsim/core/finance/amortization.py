# credsim/core/finance/amortization.py

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal, localcontext

from credsim.core.errors import InvalidArgumentError, finance_error_guard
from credsim.core.log import get_logger
from credsim.schemas.models import (
    AmortizationEntry,
    GracePeriodType,
    ScheduleTotals,
    StatementDelivery,
)

from .precision import FINANCE_CONTEXT, ONE, ZERO, Number, round_half_up, to_decimal

logger = get_logger(__name__)

DEFAULT_PHYSICAL_DELIVERY_FEE = Decimal("10")


def monthly_payment(principal: Number, monthly_rate: Number, term_months: int) -> Decimal:
    """
    Fixed installment for a fully-amortizing loan.

    Formula (standard annuity):
        PMT = P * [ r (1 + r)^n ] / [ (1 + r)^n - 1 ]

    Args:
        principal:    Balance to amortize (>= 0).
        monthly_rate: Monthly effective rate as a fraction (>= 0).
        term_months:  Number of installments (> 0).

    Returns:
        The installment rounded to cents (ROUND_HALF_UP). With a zero rate the
        straight-line quotient P / n is returned unrounded.

    Raises:
        InvalidArgumentError: non-positive term, negative principal or rate, or a
        degenerate growth factor.
    """
    if term_months <= 0:
        raise InvalidArgumentError(f"term_months must be > 0, got {term_months}")
    p = to_decimal(principal, name="principal")
    r = to_decimal(monthly_rate, name="monthly_rate")
    if p < 0:
        raise InvalidArgumentError(f"principal must be >= 0, got {p}")
    if r < 0:
        raise InvalidArgumentError(f"monthly_rate must be >= 0, got {r}")

    with localcontext(FINANCE_CONTEXT), finance_error_guard("monthly_payment"):
        if r == 0:
            return p / Decimal(term_months)

        rate_factor = (ONE + r) ** term_months
        denominator = rate_factor - ONE
        if denominator == 0:
            raise InvalidArgumentError(f"monthly_rate {r} is too small to amortize over {term_months} periods")
        payment = p * (r * rate_factor) / denominator
        return round_half_up(payment, 2)


def generate_schedule(
    principal: Number,
    monthly_rate: Number,
    initial_payment: Number,
    term_months: int,
    grace_period_months: int | None = None,
    grace_period_type: GracePeriodType | str | None = None,
    life_insurance_rate: Number = ZERO,
    property_insurance_rate: Number = ZERO,
    monthly_commissions: Number = ZERO,
    administration_costs: Number = ZERO,
    statement_delivery: StatementDelivery | str | None = StatementDelivery.DIGITAL,
    property_insurance_value: Number = ZERO,
    *,
    physical_delivery_fee: Number = DEFAULT_PHYSICAL_DELIVERY_FEE,
) -> list[AmortizationEntry]:
    """
    Build the monthly schedule in a single forward pass.

    Model:
        - Grace months (1..g):
            TOTAL   → nothing is paid; interest capitalizes into the balance.
            PARTIAL → interest is paid; the balance does not move.
            NONE    → the regular installment is paid (period still flagged as grace).
        - Month g+1: the installment is re-amortized from the current balance over n - g.
        - Final month: principal is forced to the remaining balance so the loan closes at 0.
        - Every month: life insurance on the balance, property insurance on the insured
          value, flat commissions/admin costs and an optional physical-statement fee.

    Args:
        principal:                Disbursed amount.
        monthly_rate:             Monthly effective rate (fraction).
        initial_payment:          Base installment used until grace ends (see monthly_payment()).
        term_months:              Total periods including grace.
        grace_period_months:      Grace window length; None or 0 for none.
        grace_period_type:        GracePeriodType or its tag ("total", "partial", "none").
        life_insurance_rate:      Monthly rate applied to the balance.
        property_insurance_rate:  Monthly rate applied to property_insurance_value.
        monthly_commissions:      Flat per-period commissions.
        administration_costs:     Flat per-period administration costs.
        statement_delivery:       StatementDelivery or its tag ("physical", "digital").
        property_insurance_value: Insured property value.
        physical_delivery_fee:    Fee charged each period for PHYSICAL delivery.

    Returns:
        list[AmortizationEntry], one per period 1..term_months.

    Raises:
        InvalidArgumentError: non-positive term, negative principal/grace, or a grace
        window that swallows the whole term.
    """
    if term_months <= 0:
        raise InvalidArgumentError(f"term_months must be > 0, got {term_months}")
    grace = grace_period_months or 0
    if grace < 0:
        raise InvalidArgumentError(f"grace_period_months must be >= 0, got {grace}")
    if grace >= term_months:
        raise InvalidArgumentError(f"grace_period_months ({grace}) must be shorter than term_months ({term_months})")

    grace_type = GracePeriodType.parse(grace_period_type)
    delivery = StatementDelivery.parse(statement_delivery)

    balance = to_decimal(principal, name="principal")
    if balance < 0:
        raise InvalidArgumentError(f"principal must be >= 0, got {balance}")
    rate = to_decimal(monthly_rate, name="monthly_rate")
    current_payment = to_decimal(initial_payment, name="initial_payment")
    life_rate = to_decimal(life_insurance_rate, name="life_insurance_rate")
    property_charge_rate = to_decimal(property_insurance_rate, name="property_insurance_rate")
    commissions = to_decimal(monthly_commissions, name="monthly_commissions")
    admin_costs = to_decimal(administration_costs, name="administration_costs")
    insured_value = to_decimal(property_insurance_value, name="property_insurance_value")
    delivery_cost = to_decimal(physical_delivery_fee, name="physical_delivery_fee") if delivery is StatementDelivery.PHYSICAL else ZERO

    schedule: list[AmortizationEntry] = []
    cumulative_principal = ZERO
    cumulative_interest = ZERO

    with localcontext(FINANCE_CONTEXT), finance_error_guard("generate_schedule"):
        property_insurance = insured_value * property_charge_rate

        for period in range(1, term_months + 1):
            in_grace = period <= grace

            # --- Grace ends: re-amortize the (possibly larger) balance ---
            if grace and period == grace + 1:
                current_payment = monthly_payment(balance, rate, term_months - grace)
                logger.debug("period %d: re-amortized %s over %d months → %s", period, balance, term_months - grace, current_payment)

            beginning = balance
            interest = balance * rate

            if in_grace and grace_type is GracePeriodType.TOTAL:
                principal_paid = ZERO
                scheduled = ZERO
                balance = balance + interest
            elif in_grace and grace_type is GracePeriodType.PARTIAL:
                principal_paid = ZERO
                scheduled = interest
            elif period == term_months:
                # Close the loan exactly; absorbs rounding drift from the cent-rounded installment
                principal_paid = balance
                current_payment = principal_paid + interest
                scheduled = current_payment
            else:
                principal_paid = current_payment - interest
                scheduled = current_payment

            # Insurance runs on the balance after any capitalization
            life_insurance = balance * life_rate
            total_payment = scheduled + life_insurance + property_insurance + commissions + admin_costs + delivery_cost

            if in_grace and grace_type is GracePeriodType.TOTAL:
                ending = balance
            else:
                ending = balance - principal_paid

            cumulative_principal += principal_paid
            cumulative_interest += interest

            schedule.append(
                AmortizationEntry(
                    period=period,
                    beginning_balance=beginning,
                    scheduled_payment=scheduled,
                    principal_payment=principal_paid,
                    interest_payment=interest,
                    life_insurance=life_insurance,
                    property_insurance=property_insurance,
                    commissions=commissions,
                    admin_costs=admin_costs,
                    delivery_cost=delivery_cost,
                    total_payment=total_payment,
                    ending_balance=ending,
                    cumulative_principal=cumulative_principal,
                    cumulative_interest=cumulative_interest,
                    cash_flow=-total_payment,
                    is_grace_period=in_grace,
                )
            )
            balance = ending

    return schedule


def schedule_cash_flows(schedule: Sequence[AmortizationEntry], disbursed: Number) -> list[Decimal]:
    """
    Borrower-side flow sequence for NPV/IRR: index 0 is the disbursed principal (inflow),
    indices 1..n are each period's cash_flow (-total_payment).
    """
    return [to_decimal(disbursed, name="disbursed")] + [e.cash_flow for e in schedule]


def schedule_totals(schedule: Sequence[AmortizationEntry]) -> ScheduleTotals:
    """Column sums over the schedule (no rounding)."""
    with localcontext(FINANCE_CONTEXT):
        return ScheduleTotals(
            interest=sum((e.interest_payment for e in schedule), ZERO),
            principal=sum((e.principal_payment for e in schedule), ZERO),
            life_insurance=sum((e.life_insurance for e in schedule), ZERO),
            property_insurance=sum((e.property_insurance for e in schedule), ZERO),
            commissions=sum((e.commissions for e in schedule), ZERO),
            admin_costs=sum((e.admin_costs for e in schedule), ZERO),
            delivery=sum((e.delivery_cost for e in schedule), ZERO),
            total_paid=sum((e.total_payment for e in schedule), ZERO),
        )
