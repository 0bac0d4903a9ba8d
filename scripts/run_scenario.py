#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from api.services.formatting import format_results, scenario_from_display
from api.services.scenario_model import compute_scenario_results
from api.services.validation import InputValidationError

OVERRIDES = {
    "leads": "leads_count",
    "issue_rate": "issue_rate",
    "closing_rate": "closing_rate",
    "average_sale": "average_sale",
    "marketing": "marketing_spend",
}


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print the funnel-to-net-profit waterfall for a scenario")
    parser.add_argument("--leads", type=float)
    parser.add_argument("--issue-rate", type=float, help="percent, e.g. 75")
    parser.add_argument("--closing-rate", type=float, help="percent, e.g. 40")
    parser.add_argument("--average-sale", type=float)
    parser.add_argument("--marketing", type=float)
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    values = {
        field: getattr(args, option)
        for option, field in OVERRIDES.items()
        if getattr(args, option) is not None
    }

    try:
        results = compute_scenario_results(scenario_from_display(values))
    except InputValidationError as exc:
        print(f"Invalid input: {exc}")
        raise SystemExit(1)

    print(json.dumps(format_results(results), indent=2))


if __name__ == "__main__":
    main()
