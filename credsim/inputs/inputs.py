# credsim/inputs/inputs.py
"""
Inputs loader for the loan simulator.

Goals
-----
- Deterministic, file-first inputs with validation via Pydantic.
- Accept a bare SimulationInputs payload or a structured payload that adds run
  options (report path, number of schedule rows to render).
- Minimal environment-variable overrides for CI/CLI convenience.

Supported JSON shapes
---------------------
1) Bare (root = SimulationInputs)
   {
     "loan": {"principal": 100000, "rate": {"rate": 12, "kind": "TE"}, "term_months": 12},
     "costs": {...},
     "opportunity_cost": {...}
   }

2) Structured (root = AppInputs)
   {
     "inputs": { ... SimulationInputs ... },
     "run": {"out": "simulation_report.md", "schedule_rows": 24}
   }

Environment overrides (optional)
--------------------------------
- CREDSIM_OUT       -> AppInputs.run.out
- CREDSIM_COK_RATE  -> AppInputs.inputs.opportunity_cost.rate (percent; creates an
                       annual effective COK if none is configured)

Notes
-----
- This module *does not* hit the network; the opportunity cost rate is always
  supplied already resolved.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, cast

from pydantic import BaseModel, Field, ValidationError

from credsim.core.log import get_logger
from credsim.schemas.models import CompoundingPeriod, RateDescriptor, RateKind, SimulationInputs

logger = get_logger(__name__)

# ----------------------------
# Pydantic models for structured inputs
# ----------------------------


class RunOptions(BaseModel):
    """Runtime (non-financial) options controlling the simulation run."""

    out: str = Field("simulation_report.md", description="Path to write the Markdown report.")
    schedule_rows: int | None = Field(None, ge=1, description="Rows of the schedule to render (None = all).")


class AppInputs(BaseModel):
    """
    Full input payload.

    Attributes:
        inputs: The validated SimulationInputs used by the engine.
        run:    Non-financial, runtime options for the current execution.
    """

    inputs: SimulationInputs
    run: RunOptions = RunOptions()


# ----------------------------
# Loader
# ----------------------------


@dataclass(frozen=True)
class InputsLoader:
    """
    File-first inputs loader with light env overrides.

    Default search (when path=None):
        1) ./data/sample/simulation.json
        2) ./config.json
    """

    env_prefix: str = "CREDSIM_"

    # ---------- Public API ----------

    def load(self, path: str | Path | None = None) -> AppInputs:
        """Load inputs from a JSON file (path). If path is None, try defaults."""
        p = self._resolve_path(path)
        raw = self._read_json_file(p)
        cfg = self._parse_root(self._wrap_bare(raw))
        return self._apply_env_overrides(cfg)

    def load_json(self, text: str) -> AppInputs:
        """Load inputs from a JSON string (bare or structured shape)."""
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON payload: {e}") from e
        if not isinstance(raw, dict):
            raise ValueError("Inputs payload must be a JSON object")
        cfg = self._parse_root(self._wrap_bare(raw))
        return self._apply_env_overrides(cfg)

    def with_overrides(
        self,
        cfg: AppInputs,
        *,
        out: str | None = None,
        schedule_rows: int | None = None,
        term_months: int | None = None,
        cok_rate: Decimal | None = None,
    ) -> AppInputs:
        """
        Return a *new* AppInputs with provided non-null overrides applied.
        Does not mutate the original instance.
        """
        run_updates: dict[str, Any] = {}
        if out is not None:
            run_updates["out"] = out
        if schedule_rows is not None:
            run_updates["schedule_rows"] = schedule_rows

        sim = cfg.inputs
        if term_months is not None:
            # Re-validate so grace/term consistency is checked again
            loan_data = sim.loan.model_dump()
            loan_data["term_months"] = term_months
            sim = self._revalidate(sim, loan=loan_data)
        if cok_rate is not None:
            sim = sim.model_copy(update={"opportunity_cost": self._cok_with_rate(sim.opportunity_cost, cok_rate)})

        if not run_updates and sim is cfg.inputs:
            return cfg

        return cfg.model_copy(update={"run": cfg.run.model_copy(update=run_updates), "inputs": sim})

    # ---------- Internals ----------

    def _resolve_path(self, path: str | Path | None) -> Path:
        if path is not None:
            p = Path(path)
            if not p.exists():
                raise FileNotFoundError(f"Inputs file not found: {p}")
            return p

        for candidate in (Path("data/sample/simulation.json"), Path("config.json")):
            if candidate.exists():
                return candidate
        raise FileNotFoundError(
            "No inputs path provided and no default inputs found. Looked for ./data/sample/simulation.json and ./config.json."
        )

    def _read_json_file(self, p: Path) -> dict[str, Any]:
        if p.suffix.lower() != ".json":
            raise ValueError(f"Unsupported inputs format for {p.name}; only .json is supported.")
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {p}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Inputs in {p} must be a JSON object")
        return cast(dict[str, Any], data)

    def _wrap_bare(self, raw: dict[str, Any]) -> dict[str, Any]:
        if "inputs" in raw:
            return raw  # already structured
        return {"inputs": raw}

    def _parse_root(self, data: dict[str, Any]) -> AppInputs:
        try:
            return AppInputs.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Inputs validation failed:\n{e}") from e

    def _revalidate(self, sim: SimulationInputs, **updates: Any) -> SimulationInputs:
        data = sim.model_dump()
        data.update(updates)
        try:
            return SimulationInputs.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Inputs validation failed:\n{e}") from e

    @staticmethod
    def _cok_with_rate(current: RateDescriptor | None, rate: Decimal) -> RateDescriptor:
        if current is None:
            return RateDescriptor(rate=rate, kind=RateKind.EFFECTIVE, period=CompoundingPeriod.ANNUAL)
        return current.model_copy(update={"rate": rate})

    def _apply_env_overrides(self, cfg: AppInputs) -> AppInputs:
        """Apply light, optional overrides from environment variables."""
        prefix = self.env_prefix

        out = os.getenv(f"{prefix}OUT") or None

        cok_rate: Decimal | None = None
        raw_cok = os.getenv(f"{prefix}COK_RATE")
        if raw_cok:
            try:
                cok_rate = Decimal(raw_cok.strip())
            except InvalidOperation:
                # Ignore bad value; keep the validated opportunity cost
                logger.warning("ignoring %sCOK_RATE=%r (not a number)", prefix, raw_cok)

        return self.with_overrides(cfg, out=out, cok_rate=cok_rate)


# ----------------------------
# Convenience function
# ----------------------------


def load_inputs(path: str | Path | None = None) -> AppInputs:
    """Convenience wrapper for one-shot callers."""
    return InputsLoader().load(path)
