# tests/conftest.py
from __future__ import annotations

import pytest

from credsim.core.finance import run_simulation
from tests.utils import make_costs, make_loan_terms, make_simulation_inputs


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # Loader env overrides must not leak in from the developer shell
    for key in ("CREDSIM_OUT", "CREDSIM_COK_RATE", "CREDSIM_DEBUG"):
        monkeypatch.delenv(key, raising=False)
    yield


# -------- Simulation fixtures --------
@pytest.fixture
def baseline_inputs():
    """Factory for canonical inputs (TEA 12%, 12 months, no grace, COK TEA 10%)."""

    def _factory(**overrides):
        si = make_simulation_inputs()
        return si.model_copy(update=overrides) if overrides else si

    return _factory


@pytest.fixture
def baseline_result(baseline_inputs):
    return run_simulation(baseline_inputs())


@pytest.fixture
def grace_inputs():
    """24-month loan with a 3-month grace window and realistic ancillary costs."""

    def _factory(grace_type: str = "total"):
        return make_simulation_inputs(
            loan=make_loan_terms(term_months=24, grace_period_months=3, grace_period_type=grace_type),
            costs=make_costs(),
        )

    return _factory
