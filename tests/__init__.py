"""
Expose common test utilities so tests can import directly:
    from tests import make_loan_terms, make_simulation_inputs
"""

from .utils import make_costs, make_loan_terms, make_simulation_inputs

__all__ = ["make_loan_terms", "make_costs", "make_simulation_inputs"]
