from decimal import Decimal

import pytest
from pydantic import ValidationError

from credsim.core.errors import InvalidArgumentError
from credsim.schemas.models import (
    AncillaryCosts,
    CompoundingPeriod,
    GracePeriodType,
    LoanTerms,
    RateDescriptor,
    RateKind,
    RootResult,
    SimulationInputs,
    StatementDelivery,
)
from tests.utils import make_loan_terms, make_rate


@pytest.mark.parametrize("tag, kind", [("TE", RateKind.EFFECTIVE), ("te", RateKind.EFFECTIVE), ("TN", RateKind.NOMINAL), ("nominal", RateKind.NOMINAL)])
def test_rate_kind_aliases(tag, kind):
    assert RateKind.parse(tag) is kind


def test_rate_kind_unknown_raises():
    with pytest.raises(InvalidArgumentError, match="Invalid rate type"):
        RateKind.parse("TX")


def test_compounding_period_lenient_fallback_logs(caplog):
    assert CompoundingPeriod.parse("weird", strict=False) is CompoundingPeriod.MONTHLY
    assert "falling back to monthly" in caplog.text


def test_compounding_period_properties():
    assert CompoundingPeriod.QUARTERLY.days == 90
    assert CompoundingPeriod.QUARTERLY.per_year == 4
    assert CompoundingPeriod.parse(" Semi-Annually ") is CompoundingPeriod.SEMIANNUAL


def test_grace_and_delivery_defaults():
    assert GracePeriodType.parse(None) is GracePeriodType.NONE
    assert StatementDelivery.parse(None) is StatementDelivery.DIGITAL
    assert GracePeriodType.parse("TOTAL") is GracePeriodType.TOTAL
    with pytest.raises(InvalidArgumentError):
        StatementDelivery.parse("fax")


def test_rate_descriptor_parses_tags_and_defaults_to_monthly():
    r = RateDescriptor(rate=Decimal("12"), kind="TN", capitalization="bi-monthly")
    assert r.kind is RateKind.NOMINAL
    assert r.period is CompoundingPeriod.MONTHLY
    assert r.capitalization is CompoundingPeriod.BIMONTHLY
    assert str(r) == "TN monthly 12% cap. bimonthly"


def test_rate_descriptor_null_period_means_monthly():
    r = RateDescriptor.model_validate({"rate": "10", "kind": "TE", "period": None})
    assert r.period is CompoundingPeriod.MONTHLY
    assert r.capitalization is None
    explicit = RateDescriptor.model_validate({"rate": "10", "kind": "TE", "period": "annual"})
    assert explicit.period is CompoundingPeriod.ANNUAL


def test_rate_descriptor_rejects_unknown_kind():
    with pytest.raises(ValidationError):
        RateDescriptor(rate=Decimal("12"), kind="XX")


def test_rate_descriptor_is_frozen():
    r = make_rate(10)
    with pytest.raises(ValidationError):
        r.rate = Decimal("11")


def test_loan_terms_grace_must_fit_in_term():
    with pytest.raises(ValidationError):
        make_loan_terms(term_months=6, grace_period_months=6)
    ok = make_loan_terms(term_months=6, grace_period_months=5, grace_period_type="partial")
    assert ok.grace_period_type is GracePeriodType.PARTIAL


@pytest.mark.parametrize("field, value", [("principal", 0), ("term_months", 0), ("grace_period_months", -1)])
def test_loan_terms_bounds(field, value):
    data = {"principal": Decimal("1000"), "rate": make_rate(12), "term_months": 12}
    data[field] = value
    with pytest.raises(ValidationError):
        LoanTerms(**data)


def test_ancillary_costs_defaults_and_bounds():
    c = AncillaryCosts()
    assert c.statement_delivery is StatementDelivery.DIGITAL
    assert c.physical_delivery_fee == Decimal("10")
    assert c.life_insurance_rate == 0
    with pytest.raises(ValidationError):
        AncillaryCosts(monthly_commissions=Decimal("-1"))


def test_simulation_inputs_from_plain_dict():
    si = SimulationInputs.model_validate(
        {
            "loan": {"principal": "50000", "rate": {"rate": 18, "kind": "TN", "capitalization": "daily"}, "term_months": 24},
            "opportunity_cost": {"rate": 10, "kind": "TE"},
        }
    )
    assert si.loan.principal == Decimal("50000")
    assert si.loan.rate.capitalization is CompoundingPeriod.DAILY
    assert si.costs == AncillaryCosts()
    assert si.opportunity_cost.kind is RateKind.EFFECTIVE
    assert si.opportunity_cost.period is CompoundingPeriod.MONTHLY


def test_stop_reason_accepts_diverged():
    r = RootResult(rate=Decimal("0.01"), iterations=0, converged=False, stop_reason="diverged")
    assert r.stop_reason == "diverged"
    with pytest.raises(ValidationError):
        RootResult(rate=Decimal("0.01"), iterations=0, converged=False, stop_reason="exploded")
