from __future__ import annotations
from typing import Any, Dict

from invoice_roi.simulation.engine import SavingsBreakdown, SimulationResult


def summary_md(inputs: Dict[str, Any], result: SimulationResult, breakdown: SavingsBreakdown | None = None) -> str:
    lines = ["# Invoicing ROI Summary", "", "## Inputs", ""]
    for k, v in inputs.items():
        lines.append(f"- {k}: {v}")
    if breakdown is not None:
        lines += ["", "## Monthly Cost Breakdown", ""]
        lines.append(f"- labor_cost_manual: {breakdown.labor_cost_manual:,.2f}")
        lines.append(f"- auto_cost: {breakdown.auto_cost:,.2f}")
        lines.append(f"- error_savings: {breakdown.error_savings:,.2f}")
        lines.append(f"- monthly_savings_raw: {breakdown.monthly_savings_raw:,.2f}")
    lines += ["", "## Results", ""]
    for k, v in result.to_dict().items():
        lines.append(f"- {k}: {v:,.2f}")
    return "\n".join(lines) + "\n"
