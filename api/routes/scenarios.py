from __future__ import annotations

from dataclasses import asdict
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from api.services.formatting import format_results, scenario_to_display
from api.services.scenario_model import (
    Scenario,
    ScenarioNotFoundError,
    assign_baseline,
    compare_scenarios,
    compute_scenario_results,
    find_baseline,
)

router = APIRouter(prefix="/api/scenarios", tags=["scenarios"])


class CompareRequest(BaseModel):
    scenario: Scenario
    baseline: Optional[Scenario] = None


class BaselineRequest(BaseModel):
    scenarios: list[Scenario]
    baseline_id: str


@router.get("/defaults")
async def scenario_defaults() -> dict[str, Any]:
    scenario = Scenario()
    return {"scenario": asdict(scenario), "display": scenario_to_display(scenario)}


@router.post("/results")
async def scenario_results(scenario: Scenario) -> dict[str, Any]:
    results = compute_scenario_results(scenario)
    return {
        "scenario": asdict(scenario),
        "results": asdict(results),
        "display": format_results(results),
    }


@router.post("/compare")
async def scenario_compare(body: CompareRequest) -> dict[str, Any]:
    results = compute_scenario_results(body.scenario)
    baseline_results = compute_scenario_results(body.baseline) if body.baseline else None
    return {
        "results": asdict(results),
        "baseline_results": asdict(baseline_results) if baseline_results else None,
        "deltas": [asdict(d) for d in compare_scenarios(results, baseline_results)],
    }


@router.post("/baseline")
async def scenario_baseline(body: BaselineRequest) -> dict[str, Any]:
    try:
        scenarios = assign_baseline(body.scenarios, body.baseline_id)
    except ScenarioNotFoundError:
        raise HTTPException(status_code=404, detail="Scenario not found") from None

    baseline = find_baseline(scenarios)
    return {
        "scenarios": [asdict(s) for s in scenarios],
        "baseline_id": baseline.id if baseline else None,
    }
