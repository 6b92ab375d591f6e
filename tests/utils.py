# tests/utils.py
"""
Single source of truth for test data, factories, and canonical payloads.
Update values here to cascade across the test suite.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from credsim.schemas.models import (
    AncillaryCosts,
    CompoundingPeriod,
    GracePeriodType,
    LoanTerms,
    RateDescriptor,
    RateKind,
    SimulationInputs,
    StatementDelivery,
)

# -----------------------------
# Global defaults (edit once)
# -----------------------------

DEFAULT_PRINCIPAL = Decimal("100000")
DEFAULT_TERM = 12
DEFAULT_MONTHLY_RATE = Decimal("0.01")
DEFAULT_TEA = Decimal("12")
DEFAULT_COK_TEA = Decimal("10")


def make_rate(
    rate: Decimal | str = DEFAULT_TEA,
    kind: RateKind | str = RateKind.EFFECTIVE,
    period: CompoundingPeriod | str | None = CompoundingPeriod.ANNUAL,
    capitalization: CompoundingPeriod | str | None = None,
) -> RateDescriptor:
    return RateDescriptor(rate=Decimal(rate), kind=kind, period=period, capitalization=capitalization)


def make_loan_terms(
    *,
    principal: Decimal | str = DEFAULT_PRINCIPAL,
    rate: RateDescriptor | None = None,
    term_months: int = DEFAULT_TERM,
    grace_period_months: int = 0,
    grace_period_type: GracePeriodType | str = GracePeriodType.NONE,
) -> LoanTerms:
    return LoanTerms(
        principal=Decimal(principal),
        rate=rate or make_rate(),
        term_months=term_months,
        grace_period_months=grace_period_months,
        grace_period_type=grace_period_type,
    )


def make_costs(**overrides: Any) -> AncillaryCosts:
    """Realistic ancillary costs; pass overrides to tweak single fields."""
    base: dict[str, Any] = {
        "life_insurance_rate": Decimal("0.0005"),
        "property_insurance_rate": Decimal("0.0003"),
        "property_insurance_value": Decimal("200000"),
        "monthly_commissions": Decimal("5"),
        "administration_costs": Decimal("3.5"),
        "statement_delivery": StatementDelivery.PHYSICAL,
    }
    base.update(overrides)
    return AncillaryCosts(**base)


def make_simulation_inputs(
    *,
    loan: LoanTerms | None = None,
    costs: AncillaryCosts | None = None,
    with_cok: bool = True,
) -> SimulationInputs:
    return SimulationInputs(
        loan=loan or make_loan_terms(),
        costs=costs or AncillaryCosts(),
        opportunity_cost=make_rate(DEFAULT_COK_TEA) if with_cok else None,
    )


SAMPLE_JSON_BARE = """
{
  "loan": {
    "principal": "100000",
    "rate": {"rate": "12", "kind": "TE", "period": "annual"},
    "term_months": 24,
    "grace_period_months": 2,
    "grace_period_type": "total"
  },
  "costs": {"statement_delivery": "physical", "monthly_commissions": "5"},
  "opportunity_cost": {"rate": "10", "kind": "TE", "period": "annual"}
}
"""
