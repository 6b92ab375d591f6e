# credsim/core/finance/__init__.py

from .amortization import (
    generate_schedule,
    monthly_payment,
    schedule_cash_flows,
    schedule_totals,
)
from .engine import descriptor_monthly_rate, run_simulation
from .irr import (
    irr_fixed,
    irr_schedule,
    npv_fixed,
    npv_schedule,
    solve_irr_fixed,
    solve_irr_schedule,
)
from .rates import (
    capitalizations_per_year,
    convert_to_monthly,
    days_in_period,
    monthly_effective_rate,
    opportunity_cost_rate,
)

__all__ = [
    "run_simulation",
    "descriptor_monthly_rate",
    "monthly_effective_rate",
    "convert_to_monthly",
    "opportunity_cost_rate",
    "days_in_period",
    "capitalizations_per_year",
    "monthly_payment",
    "generate_schedule",
    "schedule_cash_flows",
    "schedule_totals",
    "npv_fixed",
    "irr_fixed",
    "solve_irr_fixed",
    "npv_schedule",
    "irr_schedule",
    "solve_irr_schedule",
]
