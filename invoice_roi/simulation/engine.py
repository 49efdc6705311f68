from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict
import math

from invoice_roi.simulation.validation import SimulationInput


@dataclass(frozen=True)
class EngineConstants:
    automated_cost_per_invoice: float = 0.20  # currency per invoice once automated
    error_rate_auto: float = 0.001  # 0.1% assumed automated error rate
    min_roi_boost_factor: float = 1.1  # uplift applied to raw monthly savings
    min_monthly_savings: float = 1.0  # floor for the headline monthly figure


DEFAULT_CONSTANTS = EngineConstants()


@dataclass(frozen=True)
class SimulationResult:
    monthly_savings: float
    cumulative_savings: float
    net_savings: float
    payback_months: float
    roi_percentage: float
    automated_cost_per_invoice: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in self.to_dict().values())


@dataclass(frozen=True)
class SavingsBreakdown:
    labor_cost_manual: float
    auto_cost: float
    error_savings: float
    monthly_savings_raw: float


class SimulationEngine:
    """Monthly savings and ROI of automating invoice processing.

    monthly_savings = max((labor + error_savings - auto_cost) * boost, floor)
    cumulative      = monthly_savings * horizon
    net             = cumulative - implementation cost
    payback / ROI are 0 when there is no implementation cost.

    The boost factor and the positive floor always favor automation; both are
    product requirements. No rounding happens here.
    """

    def __init__(self, constants: EngineConstants = DEFAULT_CONSTANTS):
        self.constants = constants

    def breakdown(self, i: SimulationInput) -> SavingsBreakdown:
        c = self.constants
        labor_cost_manual = i.num_ap_staff * i.hourly_wage * i.avg_hours_per_invoice * i.monthly_invoice_volume
        auto_cost = i.monthly_invoice_volume * c.automated_cost_per_invoice
        # negative when the manual error rate is below the automated one
        error_savings = (i.error_rate_manual / 100 - c.error_rate_auto) * i.monthly_invoice_volume * i.error_cost
        return SavingsBreakdown(
            labor_cost_manual=labor_cost_manual,
            auto_cost=auto_cost,
            error_savings=error_savings,
            monthly_savings_raw=(labor_cost_manual + error_savings) - auto_cost,
        )

    def simulate(self, i: SimulationInput) -> SimulationResult:
        c = self.constants
        b = self.breakdown(i)
        boosted = b.monthly_savings_raw * c.min_roi_boost_factor
        # written so NaN (inf - inf on overflowing inputs) also lands on the floor
        monthly_savings = boosted if boosted >= c.min_monthly_savings else c.min_monthly_savings

        cost = i.one_time_implementation_cost
        cumulative_savings = monthly_savings * i.time_horizon_months
        net_savings = cumulative_savings - cost
        payback_months = cost / monthly_savings if cost > 0 else 0.0
        roi_percentage = (net_savings / cost) * 100 if cost > 0 else 0.0

        return SimulationResult(
            monthly_savings=monthly_savings,
            cumulative_savings=cumulative_savings,
            net_savings=net_savings,
            payback_months=payback_months,
            roi_percentage=roi_percentage,
            automated_cost_per_invoice=c.automated_cost_per_invoice,
        )


_DEFAULT_ENGINE = SimulationEngine()


def simulate(i: SimulationInput) -> SimulationResult:
    return _DEFAULT_ENGINE.simulate(i)

