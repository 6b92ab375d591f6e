# credsim/schemas/models.py

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from credsim.core.errors import InvalidArgumentError
from credsim.core.log import get_logger

logger = get_logger(__name__)

# =========================
# Closed tags
# =========================


class RateKind(str, Enum):
    """How an annual rate is declared: effective (TE) or nominal (TN)."""

    EFFECTIVE = "effective"
    NOMINAL = "nominal"

    @classmethod
    def parse(cls, value: RateKind | str) -> RateKind:
        if isinstance(value, RateKind):
            return value
        key = str(value).strip().lower() if value is not None else ""
        found = _RATE_KIND_ALIASES.get(key)
        if found is None:
            raise InvalidArgumentError(f"Invalid rate type: {value!r}")
        return found


_RATE_KIND_ALIASES: dict[str, RateKind] = {
    "te": RateKind.EFFECTIVE,
    "effective": RateKind.EFFECTIVE,
    "tn": RateKind.NOMINAL,
    "nominal": RateKind.NOMINAL,
}


class CompoundingPeriod(str, Enum):
    """Period tag of a rate (or of its capitalization frequency)."""

    DAILY = "daily"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"

    @property
    def days(self) -> int:
        """Days in the period on a 360-day commercial year."""
        return _PERIOD_DAYS[self]

    @property
    def per_year(self) -> int:
        """Compounding events per year."""
        return 360 // _PERIOD_DAYS[self]

    @classmethod
    def parse(cls, value: CompoundingPeriod | str | None, *, strict: bool = True) -> CompoundingPeriod:
        """
        Resolve a period tag. None means MONTHLY.

        Unknown strings raise InvalidArgumentError unless strict=False, in which case
        they fall back to MONTHLY (30 days, 12 events/year) and a warning is logged.
        """
        if value is None:
            return cls.MONTHLY
        if isinstance(value, CompoundingPeriod):
            return value
        key = str(value).strip().lower()
        found = _PERIOD_ALIASES.get(key)
        if found is not None:
            return found
        if strict:
            raise InvalidArgumentError(f"Invalid compounding period: {value!r}")
        logger.warning("unknown compounding period %r; falling back to monthly", value)
        return cls.MONTHLY


_PERIOD_DAYS: dict[CompoundingPeriod, int] = {
    CompoundingPeriod.DAILY: 1,
    CompoundingPeriod.BIWEEKLY: 15,
    CompoundingPeriod.MONTHLY: 30,
    CompoundingPeriod.BIMONTHLY: 60,
    CompoundingPeriod.QUARTERLY: 90,
    CompoundingPeriod.SEMIANNUAL: 180,
    CompoundingPeriod.ANNUAL: 360,
}

_PERIOD_ALIASES: dict[str, CompoundingPeriod] = {
    "daily": CompoundingPeriod.DAILY,
    "biweekly": CompoundingPeriod.BIWEEKLY,
    "bi-weekly": CompoundingPeriod.BIWEEKLY,
    "seminal": CompoundingPeriod.BIWEEKLY,
    "monthly": CompoundingPeriod.MONTHLY,
    "bimonthly": CompoundingPeriod.BIMONTHLY,
    "bi-monthly": CompoundingPeriod.BIMONTHLY,
    "quarterly": CompoundingPeriod.QUARTERLY,
    "semiannual": CompoundingPeriod.SEMIANNUAL,
    "semi-annually": CompoundingPeriod.SEMIANNUAL,
    "annual": CompoundingPeriod.ANNUAL,
}


class GracePeriodType(str, Enum):
    """TOTAL capitalizes interest, PARTIAL pays interest only, NONE pays the regular installment."""

    NONE = "none"
    PARTIAL = "partial"
    TOTAL = "total"

    @classmethod
    def parse(cls, value: GracePeriodType | str | None) -> GracePeriodType:
        if value is None:
            return cls.NONE
        if isinstance(value, GracePeriodType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid grace period type: {value!r}") from e


class StatementDelivery(str, Enum):
    """Statement delivery mode; PHYSICAL carries a per-period delivery fee."""

    PHYSICAL = "physical"
    DIGITAL = "digital"

    @classmethod
    def parse(cls, value: StatementDelivery | str | None) -> StatementDelivery:
        if value is None:
            return cls.DIGITAL
        if isinstance(value, StatementDelivery):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid statement delivery mode: {value!r}") from e


# =========================
# Core inputs
# =========================


class RateDescriptor(BaseModel):
    """
    An interest rate as declared by the lender (or the investor, for the opportunity cost).
    Rates are PERCENTAGES (12 means 12%).
    """

    rate: Decimal = Field(..., description="Rate in percent for the declared period (e.g., 12 = 12%).")
    kind: RateKind = Field(..., description='Declared kind: effective ("TE") or nominal ("TN").')
    period: CompoundingPeriod = Field(
        CompoundingPeriod.MONTHLY, description="Period the rate is quoted for. Omitted or null means monthly."
    )
    capitalization: CompoundingPeriod | None = Field(
        None,
        description=(
            "Capitalization frequency for nominal rates. None means monthly for annual quotes "
            "and the quoted `period` otherwise."
        ),
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("kind", mode="before")
    @classmethod
    def _parse_kind(cls, v: Any) -> RateKind:
        return RateKind.parse(v)

    @field_validator("period", mode="before")
    @classmethod
    def _parse_period(cls, v: Any) -> CompoundingPeriod:
        return CompoundingPeriod.parse(v)

    @field_validator("capitalization", mode="before")
    @classmethod
    def _parse_capitalization(cls, v: Any) -> CompoundingPeriod | None:
        if v is None:
            return None
        return CompoundingPeriod.parse(v)

    def summary(self) -> str:
        label = "TE" if self.kind is RateKind.EFFECTIVE else "TN"
        cap = f" cap. {self.capitalization.value}" if self.capitalization else ""
        return f"{label} {self.period.value} {self.rate}%{cap}"

    def __str__(self) -> str:
        return self.summary()


class LoanTerms(BaseModel):
    """Principal, pricing and term of the loan, plus grace-period configuration."""

    principal: Decimal = Field(..., gt=0, description="Disbursed amount (currency units).")
    rate: RateDescriptor = Field(..., description="Loan interest rate as declared.")
    term_months: int = Field(..., gt=0, description="Number of monthly installments.")
    grace_period_months: int = Field(0, ge=0, description="Initial months under grace (0 for none).")
    grace_period_type: GracePeriodType = Field(GracePeriodType.NONE, description="How interest is handled during grace.")

    @field_validator("grace_period_type", mode="before")
    @classmethod
    def _parse_grace_type(cls, v: Any) -> GracePeriodType:
        return GracePeriodType.parse(v)

    @model_validator(mode="after")
    def _grace_within_term(self) -> LoanTerms:
        if self.grace_period_months >= self.term_months:
            raise ValueError(
                f"grace_period_months ({self.grace_period_months}) must be shorter than term_months ({self.term_months})"
            )
        return self


class AncillaryCosts(BaseModel):
    """
    Per-period costs charged on top of the base installment. Insurance rates are MONTHLY fractions.
    """

    life_insurance_rate: Decimal = Field(Decimal("0"), ge=0, description="Monthly life insurance rate on the outstanding balance.")
    property_insurance_rate: Decimal = Field(
        Decimal("0"), ge=0, description="Monthly property insurance rate on the insured property value."
    )
    property_insurance_value: Decimal = Field(Decimal("0"), ge=0, description="Insured property value (currency units).")
    monthly_commissions: Decimal = Field(Decimal("0"), ge=0, description="Flat commissions charged each period.")
    administration_costs: Decimal = Field(Decimal("0"), ge=0, description="Flat administration costs charged each period.")
    statement_delivery: StatementDelivery = Field(StatementDelivery.DIGITAL, description="Statement delivery mode.")
    physical_delivery_fee: Decimal = Field(Decimal("10"), ge=0, description="Per-period fee when statements are mailed.")

    @field_validator("statement_delivery", mode="before")
    @classmethod
    def _parse_delivery(cls, v: Any) -> StatementDelivery:
        return StatementDelivery.parse(v)


class SimulationInputs(BaseModel):
    """Top-level input bundle consumed by the simulation engine."""

    loan: LoanTerms = Field(..., description="Loan principal, rate, term and grace configuration.")
    costs: AncillaryCosts = Field(default_factory=AncillaryCosts, description="Insurance, fees and commissions.")
    opportunity_cost: RateDescriptor | None = Field(
        None, description="Opportunity cost rate (COK) used to discount the cash flows. None skips NPV."
    )


# =========================
# Computed outputs
# =========================


class AmortizationEntry(BaseModel):
    """One period of the schedule. Immutable once built."""

    period: int = Field(..., ge=1, description="1-based period index.")
    beginning_balance: Decimal = Field(..., description="Outstanding balance at the start of the period.")
    scheduled_payment: Decimal = Field(..., description="Base installment (principal + interest actually paid).")
    principal_payment: Decimal = Field(..., description="Principal amortized this period.")
    interest_payment: Decimal = Field(..., description="Interest accrued this period (capitalized under TOTAL grace).")
    life_insurance: Decimal = Field(..., description="Life insurance charge.")
    property_insurance: Decimal = Field(..., description="Property insurance charge.")
    commissions: Decimal = Field(..., description="Commissions charged.")
    admin_costs: Decimal = Field(..., description="Administration costs charged.")
    delivery_cost: Decimal = Field(..., description="Statement delivery fee.")
    total_payment: Decimal = Field(..., description="Scheduled payment plus every ancillary cost.")
    ending_balance: Decimal = Field(..., description="Outstanding balance at the end of the period.")
    cumulative_principal: Decimal = Field(..., description="Principal amortized through this period.")
    cumulative_interest: Decimal = Field(..., description="Interest accrued through this period.")
    cash_flow: Decimal = Field(..., description="Signed flow for the period: -total_payment.")
    is_grace_period: bool = Field(False, description="True when the period falls inside the grace window.")

    model_config = ConfigDict(frozen=True)


class ScheduleTotals(BaseModel):
    """Column sums over a schedule."""

    interest: Decimal
    principal: Decimal
    life_insurance: Decimal
    property_insurance: Decimal
    commissions: Decimal
    admin_costs: Decimal
    delivery: Decimal
    total_paid: Decimal

    model_config = ConfigDict(frozen=True)


StopReason = Literal["step", "residual", "flat_derivative", "max_iter", "diverged"]


class RootResult(BaseModel):
    """Outcome of a Newton-Raphson IRR search. `rate` is a periodic fraction (0.01 = 1%)."""

    rate: Decimal = Field(..., description="Last estimate of the periodic rate as a fraction.")
    iterations: int = Field(..., ge=0, description="Newton steps taken.")
    converged: bool = Field(..., description="True when a tolerance criterion was met.")
    stop_reason: StopReason = Field(..., description="Which criterion ended the search.")

    model_config = ConfigDict(frozen=True)


class SimulationResult(BaseModel):
    """Complete loan simulation: rates, installment, schedule and return metrics."""

    monthly_rate: Decimal = Field(..., description="Monthly effective rate (TEM) of the loan, as a fraction.")
    monthly_payment: Decimal = Field(..., description="Base installment before any grace re-amortization.")
    opportunity_cost_rate: Decimal | None = Field(None, description="Monthly COK as a fraction, if provided.")
    schedule: list[AmortizationEntry] = Field(..., description="Period-by-period schedule.")
    cash_flows: list[Decimal] = Field(..., description="Index 0 = disbursed principal, then -total_payment per period.")
    totals: ScheduleTotals = Field(..., description="Column sums over the schedule.")
    npv: Decimal | None = Field(None, description="NPV of cash_flows at the COK (2 dp).")
    irr_percent: Decimal | None = Field(None, description="Monthly IRR of cash_flows in percent (6 dp).")
    irr_converged: bool = Field(False, description="Whether the schedule IRR search met tolerance.")
    npv_fixed: Decimal | None = Field(None, description="Lender NPV of the base installment annuity at the COK.")
    irr_fixed_percent: Decimal | None = Field(None, description="Monthly IRR of the base installment annuity in percent (4 dp).")
    warnings: list[str] = Field(default_factory=list, description="Guardrail messages (non-convergence, negative NPV).")
