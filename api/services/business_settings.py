from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from api.services.validation import HUNDRED, InputValidationError, require_percent


@dataclass(frozen=True)
class BusinessSettings:
    """Per-organization ratios consumed by the job derivation rules.

    All percentages are whole numbers (30 means 30%). The defaults match the
    literal ratios the job editor has always applied.

    The edit path splits a job value into subcontractor cost and an assumed
    margin, so ``sub_materials_pct + sub_labor_pct + assumed_gross_margin_pct``
    must equal 100.
    """

    sub_materials_pct: Decimal = Decimal("15")
    sub_labor_pct: Decimal = Decimal("45")
    sub_payout_pct: Decimal = Decimal("60")
    assumed_gross_margin_pct: Decimal = Decimal("40")
    deposit_pct: Decimal = Decimal("30")
    min_gross_profit: Decimal = Decimal("900")
    target_gross_margin_pct: Decimal = Decimal("40")
    fallback_commission_pct: Decimal = Decimal("5")

    def __post_init__(self) -> None:
        for name in (
            "sub_materials_pct",
            "sub_labor_pct",
            "sub_payout_pct",
            "assumed_gross_margin_pct",
            "deposit_pct",
            "target_gross_margin_pct",
            "fallback_commission_pct",
        ):
            require_percent(name, getattr(self, name))
        split = self.sub_total_pct + self.assumed_gross_margin_pct
        if split != HUNDRED:
            raise InputValidationError(
                "assumed_gross_margin_pct",
                f"sub materials, sub labor and assumed margin must add up to 100, got {split}",
            )

    @property
    def sub_total_pct(self) -> Decimal:
        return self.sub_materials_pct + self.sub_labor_pct


DEFAULT_BUSINESS_SETTINGS = BusinessSettings()
