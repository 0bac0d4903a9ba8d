from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from api.services.business_settings import BusinessSettings


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    api_port: int = 8000
    frontend_url: str = "http://localhost:5173"
    log_level: str = "INFO"

    # Job ratios, whole-number percentages of job value
    sub_materials_pct: Decimal = Decimal("15")
    sub_labor_pct: Decimal = Decimal("45")
    sub_payout_pct: Decimal = Decimal("60")
    assumed_gross_margin_pct: Decimal = Decimal("40")
    deposit_pct: Decimal = Decimal("30")
    target_gross_margin_pct: Decimal = Decimal("40")
    fallback_commission_pct: Decimal = Decimal("5")

    # Minimum gross profit per job, currency units
    min_gross_profit: Decimal = Decimal("900")

    def business_settings(self) -> BusinessSettings:
        return BusinessSettings(
            sub_materials_pct=self.sub_materials_pct,
            sub_labor_pct=self.sub_labor_pct,
            sub_payout_pct=self.sub_payout_pct,
            assumed_gross_margin_pct=self.assumed_gross_margin_pct,
            deposit_pct=self.deposit_pct,
            min_gross_profit=self.min_gross_profit,
            target_gross_margin_pct=self.target_gross_margin_pct,
            fallback_commission_pct=self.fallback_commission_pct,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
