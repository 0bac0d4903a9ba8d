from __future__ import annotations

from dataclasses import asdict
from typing import Any, Mapping, Optional

from api.services.scenario_model import DISPLAY_PERCENT_FIELDS, SCENARIO_FIELDS, Scenario, ScenarioResults
from api.services.validation import InputValidationError, require_number

# Scenario rates and markup live as fractions; forms and sliders show them x100.


def scenario_to_display(scenario: Scenario) -> dict[str, Any]:
    values = asdict(scenario)
    for name in DISPLAY_PERCENT_FIELDS:
        values[name] = round(values[name] * 100, 6)
    return values


def scenario_from_display(values: Mapping[str, Any], base: Optional[Scenario] = None) -> Scenario:
    """Build a Scenario from form values, dividing percentage fields by 100.

    Fields missing from ``values`` are taken from ``base`` (or the defaults).
    """
    unknown = set(values) - set(SCENARIO_FIELDS)
    if unknown:
        raise InputValidationError(sorted(unknown)[0], "unknown scenario field")

    merged = asdict(base or Scenario())
    for name, value in values.items():
        if name in DISPLAY_PERCENT_FIELDS:
            value = require_number(name, value) / 100
        merged[name] = value
    return Scenario(**merged)


def format_results(results: ScenarioResults, ndigits: int = 2) -> dict[str, Any]:
    return {
        name: round(value, ndigits) if isinstance(value, float) else value
        for name, value in asdict(results).items()
    }
