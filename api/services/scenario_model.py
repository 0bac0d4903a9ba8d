from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields, replace
from typing import Iterable, Optional

from api.services.validation import require_flag, require_fraction, require_number

logger = logging.getLogger(__name__)

FRACTION_FIELDS = (
    "issue_rate",
    "closing_rate",
    "cogs_labor_pct",
    "cogs_materials_pct",
    "cogs_other_pct",
    "sales_commission_pct",
    "pm_commission_pct",
)

# Shown and edited as whole percentages; markup can exceed 100.
DISPLAY_PERCENT_FIELDS = FRACTION_FIELDS + ("markup_ratio",)

AMOUNT_FIELDS = (
    "leads_count",
    "average_sale",
    "markup_ratio",
    "marketing_spend",
    "owner_salary",
    "production_salary",
    "sales_salary",
    "admin_salary",
    "other_overhead",
)


class ScenarioNotFoundError(KeyError):
    pass


@dataclass(frozen=True)
class Scenario:
    """One hypothetical configuration of the business.

    Rates and cost percentages are fractions (0.32 means 32%); money fields
    share one currency unit.
    """

    id: Optional[str] = None
    name: str = ""
    description: str = ""
    is_baseline: bool = False

    leads_count: float = 800
    issue_rate: float = 0.75
    closing_rate: float = 0.4
    average_sale: float = 4000
    markup_ratio: float = 1.82
    marketing_spend: float = 100000

    cogs_labor_pct: float = 0.32
    cogs_materials_pct: float = 0.21
    cogs_other_pct: float = 0.02

    sales_commission_pct: float = 0.10
    pm_commission_pct: float = 0.03

    owner_salary: float = 50000
    production_salary: float = 25000
    sales_salary: float = 0
    admin_salary: float = 40000
    other_overhead: float = 50000


@dataclass(frozen=True)
class ScenarioResults:
    appointments: int
    sales: int
    nsli: float
    revenue: float
    cogs_labor: float
    cogs_materials: float
    cogs_other: float
    total_cogs: float
    gross_profit: float
    gross_margin_pct: float
    sales_commission: float
    pm_commission: float
    total_commissions: float
    contribution_profit: float
    total_overhead: float
    total_expenses: float
    net_profit: float
    net_margin_pct: float
    cpl: float
    roi: float
    owner_take_home: float


@dataclass(frozen=True)
class KpiDelta:
    key: str
    label: str
    current: float
    baseline: Optional[float]
    diff_pct: Optional[float]
    improved: Optional[bool]


# key, label, lower-is-better
COMPARED_KPIS = (
    ("revenue", "Revenue", False),
    ("gross_profit", "Gross Profit", False),
    ("net_profit", "Net Profit", False),
    ("owner_take_home", "Owner Take Home", False),
    ("gross_margin_pct", "Gross Margin %", False),
    ("net_margin_pct", "Net Margin %", False),
    ("cpl", "CPL", True),
    ("roi", "ROI", False),
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _safe_div(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def validate_scenario(scenario: Scenario) -> Scenario:
    for name in FRACTION_FIELDS:
        require_fraction(name, getattr(scenario, name))
    for name in AMOUNT_FIELDS:
        require_number(name, getattr(scenario, name))
    require_flag("is_baseline", scenario.is_baseline)
    return scenario


def compute_scenario_results(scenario: Scenario) -> ScenarioResults:
    """Run the lead funnel through to net profit.

    Margins come back as whole-number percentages. Every divisor is guarded,
    so an empty funnel yields zeros rather than NaN or infinity.
    """
    s = validate_scenario(scenario)

    appointments = round_half_up(s.leads_count * s.issue_rate)
    sales = round_half_up(appointments * s.closing_rate)
    revenue = sales * s.average_sale

    cogs_labor = revenue * s.cogs_labor_pct
    cogs_materials = revenue * s.cogs_materials_pct
    cogs_other = revenue * s.cogs_other_pct
    total_cogs = cogs_labor + cogs_materials + cogs_other

    gross_profit = revenue - total_cogs
    sales_commission = revenue * s.sales_commission_pct
    pm_commission = revenue * s.pm_commission_pct
    total_commissions = sales_commission + pm_commission

    total_overhead = (
        s.owner_salary
        + s.production_salary
        + s.sales_salary
        + s.admin_salary
        + s.other_overhead
    )
    total_expenses = s.marketing_spend + total_overhead + total_cogs + total_commissions
    net_profit = revenue - total_expenses

    return ScenarioResults(
        appointments=appointments,
        sales=sales,
        nsli=_safe_div(revenue, s.leads_count),
        revenue=revenue,
        cogs_labor=cogs_labor,
        cogs_materials=cogs_materials,
        cogs_other=cogs_other,
        total_cogs=total_cogs,
        gross_profit=gross_profit,
        gross_margin_pct=_safe_div(gross_profit, revenue) * 100,
        sales_commission=sales_commission,
        pm_commission=pm_commission,
        total_commissions=total_commissions,
        contribution_profit=gross_profit - total_commissions,
        total_overhead=total_overhead,
        total_expenses=total_expenses,
        net_profit=net_profit,
        net_margin_pct=_safe_div(net_profit, revenue) * 100,
        cpl=_safe_div(s.marketing_spend, s.leads_count),
        roi=_safe_div(revenue, s.marketing_spend),
        # Owner salary was already counted as overhead; add it back for the total draw.
        owner_take_home=net_profit + s.owner_salary,
    )


def percent_diff(current: Optional[float], baseline: Optional[float]) -> Optional[float]:
    """Relative change of ``current`` against ``baseline``, in percent.

    Returns None when there is nothing to compare against.
    """
    if current is None or baseline is None or baseline == 0:
        return None
    return (current - baseline) * 100 / baseline


def compare_scenarios(results: ScenarioResults, baseline: Optional[ScenarioResults]) -> list[KpiDelta]:
    deltas = []
    for key, label, lower_is_better in COMPARED_KPIS:
        current = getattr(results, key)
        base = getattr(baseline, key) if baseline is not None else None
        diff = percent_diff(current, base)
        if diff is None or diff == 0:
            improved = None
        else:
            improved = (diff < 0) if lower_is_better else (diff > 0)
        deltas.append(KpiDelta(key, label, current, base, diff, improved))
    return deltas


def find_baseline(scenarios: Iterable[Scenario]) -> Optional[Scenario]:
    for scenario in scenarios:
        if scenario.is_baseline:
            return scenario
    return None


def assign_baseline(scenarios: Iterable[Scenario], scenario_id: str) -> list[Scenario]:
    """Mark one scenario as the baseline and clear the flag on the rest."""
    scenarios = list(scenarios)
    if not any(s.id == scenario_id for s in scenarios):
        raise ScenarioNotFoundError(scenario_id)
    updated = [replace(s, is_baseline=(s.id == scenario_id)) for s in scenarios]
    logger.info("Scenario %s is now the baseline", scenario_id)
    return updated


SCENARIO_FIELDS = tuple(f.name for f in fields(Scenario))
