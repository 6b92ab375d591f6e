# tests/test_engine.py
from decimal import Decimal

import pytest

from credsim.core.errors import ArithmeticHazardError
from credsim.core.finance import descriptor_monthly_rate, engine, monthly_effective_rate, run_simulation
from credsim.core.finance.rates import convert_to_monthly
from credsim.schemas.models import SimulationResult
from tests.utils import make_costs, make_loan_terms, make_rate, make_simulation_inputs


def test_baseline_result_shape(baseline_result):
    r = baseline_result
    assert isinstance(r, SimulationResult)
    assert len(r.schedule) == 12
    assert len(r.cash_flows) == 13
    assert r.cash_flows[0] == Decimal("100000")
    assert r.monthly_payment.as_tuple().exponent == -2
    assert r.irr_converged
    assert r.opportunity_cost_rate is not None


def test_loan_rate_goes_through_monthly_effective_rate(baseline_result):
    assert baseline_result.monthly_rate == monthly_effective_rate(12, "TE")


def test_borrower_irr_equals_tem_without_costs(baseline_result):
    tem_pct = float(baseline_result.monthly_rate) * 100
    assert float(baseline_result.irr_percent) == pytest.approx(tem_pct, abs=1e-3)
    assert float(baseline_result.irr_fixed_percent) == pytest.approx(tem_pct, abs=1e-3)


def test_borrower_npv_mirrors_lender_npv(baseline_result):
    r = baseline_result
    # COK (10% TEA) is below the loan rate (12% TEA): borrower loses, lender gains
    assert r.npv < 0
    assert r.npv_fixed > 0
    assert abs(r.npv + r.npv_fixed) <= Decimal("0.10")  # last period absorbs cent rounding
    assert any("NPV < 0" in w for w in r.warnings)


def test_costs_raise_the_effective_cost_of_credit(baseline_inputs):
    plain = run_simulation(baseline_inputs())
    loaded = run_simulation(baseline_inputs(costs=make_costs()))
    assert loaded.irr_percent > plain.irr_percent
    assert loaded.totals.total_paid > plain.totals.total_paid
    assert loaded.totals.delivery == Decimal("10") * 12
    # the base installment ignores ancillary costs
    assert loaded.monthly_payment == plain.monthly_payment


def test_no_cok_skips_npv():
    r = run_simulation(make_simulation_inputs(with_cok=False))
    assert r.npv is None
    assert r.npv_fixed is None
    assert r.opportunity_cost_rate is None
    assert r.irr_percent is not None
    assert r.warnings == []


def test_cheap_loan_has_positive_borrower_npv():
    si = make_simulation_inputs(loan=make_loan_terms(rate=make_rate(6)))
    r = run_simulation(si)
    assert r.npv > 0
    assert not any("NPV < 0" in w for w in r.warnings)


@pytest.mark.parametrize("grace_type", ["total", "partial", "none"])
def test_grace_simulations_close_the_loan(grace_inputs, grace_type):
    r = run_simulation(grace_inputs(grace_type))
    assert len(r.schedule) == 24
    assert sum(e.is_grace_period for e in r.schedule) == 3
    assert abs(r.schedule[-1].ending_balance) <= Decimal("0.01")
    assert r.irr_converged


def test_total_grace_costs_more_interest_than_partial(grace_inputs):
    total = run_simulation(grace_inputs("total"))
    partial = run_simulation(grace_inputs("partial"))
    assert total.totals.interest > partial.totals.interest
    assert total.totals.principal > partial.totals.principal  # capitalized interest is amortized


def test_non_annual_loan_rate_uses_convert_to_monthly():
    rate = make_rate("3", kind="TE", period="quarterly")
    assert descriptor_monthly_rate(rate) == convert_to_monthly(3, "TE", "quarterly")
    r = run_simulation(make_simulation_inputs(loan=make_loan_terms(rate=rate), with_cok=False))
    assert r.monthly_rate == convert_to_monthly(3, "TE", "quarterly")


def test_annual_nominal_without_capitalization_compounds_monthly():
    rate = make_rate("12", kind="TN")
    assert descriptor_monthly_rate(rate) == Decimal("0.01")


def test_simulation_is_deterministic(baseline_inputs):
    si = baseline_inputs(costs=make_costs())
    assert run_simulation(si) == run_simulation(si)


def test_one_descriptor_gives_one_tem_for_loan_and_cok():
    rate = make_rate("12", kind="TN")
    si = make_simulation_inputs(loan=make_loan_terms(rate=rate)).model_copy(update={"opportunity_cost": rate})
    r = run_simulation(si)
    assert r.monthly_rate == r.opportunity_cost_rate == Decimal("0.01")
    # same rate for borrowing and for the alternative: both NPVs vanish up to cent rounding
    assert abs(r.npv) <= Decimal("0.10")
    assert abs(r.npv_fixed) <= Decimal("0.10")


def test_cok_without_period_is_a_monthly_rate():
    si = make_simulation_inputs().model_copy(
        update={"opportunity_cost": make_rate("1", kind="TE", period=None)}
    )
    r = run_simulation(si)
    assert r.opportunity_cost_rate == Decimal("0.01")


def test_fixed_irr_hazard_becomes_a_warning(baseline_inputs, monkeypatch):
    def _hazard(*args, **kwargs):
        raise ArithmeticHazardError("irr_fixed: division by zero")

    monkeypatch.setattr(engine, "solve_irr_fixed", _hazard)
    r = run_simulation(baseline_inputs())
    assert r.irr_fixed_percent is None
    assert r.irr_percent is not None
    assert any("base installment IRR undefined" in w for w in r.warnings)


def test_schedule_irr_hazard_becomes_a_warning(baseline_inputs, monkeypatch):
    def _hazard(*args, **kwargs):
        raise ArithmeticHazardError("irr_schedule: result overflows the working precision")

    monkeypatch.setattr(engine, "solve_irr_schedule", _hazard)
    r = run_simulation(baseline_inputs())
    assert r.irr_percent is None
    assert not r.irr_converged
    assert r.irr_fixed_percent is not None
    assert any("schedule IRR undefined" in w for w in r.warnings)
