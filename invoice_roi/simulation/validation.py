from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, Mapping, Optional
import math

from invoice_roi.errors import ValidationError

REQUIRED_FIELDS = (
    "monthly_invoice_volume",
    "num_ap_staff",
    "avg_hours_per_invoice",
    "hourly_wage",
    "error_rate_manual",
    "error_cost",
    "time_horizon_months",
)
OPTIONAL_COST_FIELD = "one_time_implementation_cost"


@dataclass(frozen=True)
class SimulationInput:
    monthly_invoice_volume: float  # invoices per month
    num_ap_staff: float
    avg_hours_per_invoice: float
    hourly_wage: float  # currency per hour
    error_rate_manual: float  # percent, 0..100
    error_cost: float  # currency per erroneous invoice
    time_horizon_months: float  # >= 1
    one_time_implementation_cost: float = 0.0
    scenario_name: Optional[str] = None

    def inputs_dict(self) -> Dict[str, float]:
        """Numeric fields only, in declaration order (what a scenario persists)."""
        d = asdict(self)
        d.pop("scenario_name")
        return d


def is_number(value: Any) -> bool:
    # bool is an int subclass; JSON true/false are not numbers here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:  # ints beyond float range
        return False


def validate(raw: Any) -> Optional[ValidationError]:
    """Return the first violation in ``raw`` or None when it can be simulated."""
    if not isinstance(raw, Mapping):
        raw = {}
    for key in REQUIRED_FIELDS:
        if not is_number(raw.get(key)):
            return ValidationError(key, f"{key} must be a number")
    if raw["time_horizon_months"] < 1:
        return ValidationError("time_horizon_months", "time_horizon_months must be >= 1")
    if not (0 <= raw["error_rate_manual"] <= 100):
        return ValidationError("error_rate_manual", "error_rate_manual must be in [0,100]")
    cost = raw.get(OPTIONAL_COST_FIELD)
    if cost is not None and not is_number(cost):
        return ValidationError(
            OPTIONAL_COST_FIELD, f"{OPTIONAL_COST_FIELD} must be a number if provided"
        )
    return None


def parse_input(raw: Any) -> SimulationInput:
    """Validate ``raw`` and resolve it into a SimulationInput.

    Raises ValidationError on the first violation. An absent or null
    implementation cost becomes 0.0 here and nowhere else.
    """
    err = validate(raw)
    if err is not None:
        raise err
    cost = raw.get(OPTIONAL_COST_FIELD)
    name = raw.get("scenario_name")
    return SimulationInput(
        **{k: float(raw[k]) for k in REQUIRED_FIELDS},
        one_time_implementation_cost=float(cost) if cost is not None else 0.0,
        scenario_name=name if isinstance(name, str) else None,
    )
