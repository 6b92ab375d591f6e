# credsim/reports/generator.py
from __future__ import annotations

from decimal import Decimal

from credsim.core.finance.precision import round_half_up
from credsim.schemas.models import (
    AmortizationEntry,
    ScheduleTotals,
    SimulationInputs,
    SimulationResult,
)


def _fmt_money(x: Decimal) -> str:
    """
    Format an amount with thousands separators and two decimals (ROUND_HALF_UP).

    Example:
        Decimal("123456.785") -> 123,456.79
        Decimal("-2000") -> -2,000.00
    """
    q = round_half_up(x, 2)
    sign = "-" if q < 0 else ""
    return f"{sign}{abs(q):,.2f}"


def _fmt_fraction_pct(x: Decimal, places: int = 4) -> str:
    """
    Format a fraction as a percentage.

    Example:
        Decimal("0.009488") -> 0.9488%
    """
    return f"{round_half_up(x * 100, places)}%"


def _section(title: str) -> str:
    """
    Render a level-2 heading for Markdown sections.
    """
    return f"\n## {title}\n"


# -----------------------
# Sections
# -----------------------


def _render_header(inputs: SimulationInputs) -> str:
    loan = inputs.loan
    lines = [
        "# Loan Simulation",
        "",
        f"- **Principal:** {_fmt_money(loan.principal)}",
        f"- **Rate:** {loan.rate.summary()}",
        f"- **Term:** {loan.term_months} months",
    ]
    if loan.grace_period_months:
        lines.append(f"- **Grace:** {loan.grace_period_months} months ({loan.grace_period_type.value})")
    if inputs.opportunity_cost is not None:
        lines.append(f"- **Opportunity cost (COK):** {inputs.opportunity_cost.summary()}")
    return "\n".join(lines) + "\n"


def _render_rates(result: SimulationResult) -> str:
    lines = [
        _section("Rates & Installment"),
        f"- **TEM (loan):** {_fmt_fraction_pct(result.monthly_rate)}",
        f"- **Base installment:** {_fmt_money(result.monthly_payment)}",
    ]
    if result.opportunity_cost_rate is not None:
        lines.append(f"- **COK (monthly):** {_fmt_fraction_pct(result.opportunity_cost_rate)}")
    return "\n".join(lines) + "\n"


def _render_schedule(schedule: list[AmortizationEntry], max_rows: int | None = None) -> str:
    """
    Render the schedule as a Markdown table.

    Columns:
      # | Begin | Interest | Principal | Installment | Insurance | Fees | Total | End | Grace
    """
    header = [
        _section("Amortization Schedule"),
        "| # | Begin | Interest | Principal | Installment | Insurance | Fees | Total | End | Grace |",
        "| ---: | ---: | ---: | ---: | ---: | ---: | ---: | ---: | ---: | :---: |",
    ]
    rows = []
    shown = schedule if max_rows is None else schedule[:max_rows]
    for e in shown:
        insurance = e.life_insurance + e.property_insurance
        fees = e.commissions + e.admin_costs + e.delivery_cost
        rows.append(
            f"| {e.period} "
            f"| {_fmt_money(e.beginning_balance)} "
            f"| {_fmt_money(e.interest_payment)} "
            f"| {_fmt_money(e.principal_payment)} "
            f"| {_fmt_money(e.scheduled_payment)} "
            f"| {_fmt_money(insurance)} "
            f"| {_fmt_money(fees)} "
            f"| {_fmt_money(e.total_payment)} "
            f"| {_fmt_money(e.ending_balance)} "
            f"| {'Y' if e.is_grace_period else ''} |"
        )
    if len(shown) < len(schedule):
        rows.append(f"\n_{len(schedule) - len(shown)} more periods not shown._")
    return "\n".join(header + rows) + "\n"


def _render_totals(t: ScheduleTotals) -> str:
    lines = [
        _section("Totals"),
        f"- **Interest:** {_fmt_money(t.interest)}",
        f"- **Principal:** {_fmt_money(t.principal)}",
        f"- **Insurance:** {_fmt_money(t.life_insurance + t.property_insurance)}",
        f"- **Commissions & fees:** {_fmt_money(t.commissions + t.admin_costs + t.delivery)}",
        f"- **Total paid:** {_fmt_money(t.total_paid)}",
    ]
    return "\n".join(lines) + "\n"


def _render_returns(result: SimulationResult) -> str:
    """
    Render NPV / IRR figures (monthly IRR, percent).
    """
    lines = [_section("Returns")]
    if result.npv is not None:
        lines.append(f"- **NPV (schedule, at COK):** {_fmt_money(result.npv)}")
    if result.npv_fixed is not None:
        lines.append(f"- **NPV (base installment, lender view):** {_fmt_money(result.npv_fixed)}")
    if result.irr_percent is not None:
        note = "" if result.irr_converged else " (approximate)"
        lines.append(f"- **IRR (schedule, monthly):** {result.irr_percent}%{note}")
    if result.irr_fixed_percent is not None:
        lines.append(f"- **IRR (base installment, monthly):** {result.irr_fixed_percent}%")
    return "\n".join(lines) + "\n"


def _render_warnings(warnings: list[str]) -> str:
    """
    Render guardrail warnings, if any.
    """
    if not warnings:
        return ""
    lines = [_section("Warnings")]
    for w in warnings:
        lines.append(f"- {w}")
    return "\n".join(lines) + "\n"


def generate_report(
    inputs: SimulationInputs,
    result: SimulationResult,
    *,
    schedule_rows: int | None = None,
    title_override: str | None = None,
) -> str:
    """
    Generate a Markdown report for one simulation.

    Sections:
      - Header: principal, declared rate, term, grace, COK
      - Rates & Installment: TEM, base installment, monthly COK
      - Amortization Schedule (optionally truncated to `schedule_rows`)
      - Totals
      - Returns: NPV/IRR
      - Warnings
    """
    header = _render_header(inputs)
    if title_override:
        header_lines = header.splitlines()
        header_lines[0] = f"# {title_override}"
        header = "\n".join(header_lines) + "\n"

    parts = [
        header,
        _render_rates(result),
        _render_schedule(result.schedule, schedule_rows),
        _render_totals(result.totals),
        _render_returns(result),
        _render_warnings(result.warnings),
    ]
    return "\n".join(part for part in parts if part).strip() + "\n"


def write_report(
    path: str,
    inputs: SimulationInputs,
    result: SimulationResult,
    *,
    schedule_rows: int | None = None,
) -> None:
    """
    Convenience helper to write the generated report to disk.
    """
    md = generate_report(inputs, result, schedule_rows=schedule_rows)
    with open(path, "w", encoding="utf-8") as f:
        f.write(md)
