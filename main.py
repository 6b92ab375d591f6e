# main.py
"""
Entry Point — Loan Simulator

Purpose
-------
Run one loan simulation end-to-end and emit a Markdown report:
  1) Load SimulationInputs (sample defaults or --config JSON).
  2) Convert the declared rate to a monthly effective rate, size the installment,
     build the amortization schedule and evaluate NPV/IRR.
  3) Write a Markdown report and print a short summary.

Usage
-----
    python main.py
    python main.py --config data/sample/simulation.json --out report.md --rows 24 \
                   --term 36 --cok 10
"""

from __future__ import annotations

import argparse
import sys
from decimal import Decimal, InvalidOperation

from credsim.core.errors import FINANCE_ERRORS
from credsim.core.finance import run_simulation
from credsim.inputs.inputs import AppInputs, InputsLoader, RunOptions
from credsim.reports.generator import write_report
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


def build_sample_inputs() -> SimulationInputs:
    """Return a baseline simulation for demo purposes (TEA 12%, 36 months, 3 months partial grace)."""
    return SimulationInputs(
        loan=LoanTerms(
            principal=Decimal("100000"),
            rate=RateDescriptor(rate=Decimal("12"), kind=RateKind.EFFECTIVE, period=CompoundingPeriod.ANNUAL),
            term_months=36,
            grace_period_months=3,
            grace_period_type=GracePeriodType.PARTIAL,
        ),
        costs=AncillaryCosts(
            life_insurance_rate=Decimal("0.00049"),
            property_insurance_rate=Decimal("0.00028"),
            property_insurance_value=Decimal("150000"),
            monthly_commissions=Decimal("5"),
            administration_costs=Decimal("3.5"),
            statement_delivery=StatementDelivery.PHYSICAL,
        ),
        opportunity_cost=RateDescriptor(rate=Decimal("10"), kind=RateKind.EFFECTIVE, period=CompoundingPeriod.ANNUAL),
    )


def _decimal_arg(val: str) -> Decimal:
    try:
        return Decimal(val)
    except InvalidOperation as e:
        raise argparse.ArgumentTypeError(f"not a number: {val!r}") from e


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for configurable runs."""
    p = argparse.ArgumentParser(description="Loan Simulator")
    p.add_argument("--config", type=str, default=None, help="Path to JSON config (SimulationInputs or AppInputs).")
    p.add_argument("--out", type=str, default=None, help="Output Markdown path (overrides config).")
    p.add_argument("--rows", type=int, default=None, help="Schedule rows to render (overrides config).")
    p.add_argument("--term", type=int, default=None, help="Term in months (overrides config).")
    p.add_argument("--cok", type=_decimal_arg, default=None, help="Opportunity cost rate in percent (overrides config).")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run a simulation and write simulation_report.md (or chosen output)."""
    args = parse_args(argv)
    loader = InputsLoader()

    try:
        if args.config:
            cfg: AppInputs = loader.load(args.config)
        else:
            cfg = AppInputs(inputs=build_sample_inputs(), run=RunOptions())
        cfg = loader.with_overrides(cfg, out=args.out, schedule_rows=args.rows, term_months=args.term, cok_rate=args.cok)

        result = run_simulation(cfg.inputs)
    except (ValueError, FileNotFoundError, *FINANCE_ERRORS) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    write_report(cfg.run.out, cfg.inputs, result, schedule_rows=cfg.run.schedule_rows)

    print(f"Report written to {cfg.run.out}")
    print(f"Installment: {result.monthly_payment} | TEM: {result.monthly_rate:.6%}")
    if result.npv is not None:
        print(f"NPV: {result.npv}")
    if result.irr_percent is not None:
        print(f"IRR (monthly): {result.irr_percent}%")
    for w in result.warnings:
        print(f"warning: {w}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
