"""
User context passed explicitly into every calculator.

DESIGN DECISION: Calculations never reach for global settings.
Callers build a UserContext once (usually from Settings) and hand it
to the converter and the stats calculators.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from budgetwise.config import Settings, get_settings


class UserContext(BaseModel):
    """Per-user configuration consumed by the calculators."""
    model_config = ConfigDict(frozen=True)

    base_currency: str = "USD"
    reference_currency: str = "USD"
    money_places: int = Field(default=2, ge=0, le=6)
    rate_places: int = Field(default=6, ge=0, le=12)
    freshness_window_days: int = Field(default=14, ge=0)
    goal_mode: str = Field(default="percentage", pattern="^(percentage|absolute)$")
    fixed_lifestyle_mode: bool = False

    @field_validator('base_currency', 'reference_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.strip().upper()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        **overrides,
    ) -> 'UserContext':
        """
        Build a context from application settings.

        Keyword overrides win over settings (e.g. a user's own base
        currency or goal mode).
        """
        settings = settings or get_settings()
        currency = settings.currency
        app = settings.app

        values = {
            "base_currency": app.base_currency,
            "reference_currency": currency.reference_currency,
            "money_places": currency.money_decimal_places,
            "rate_places": currency.rate_decimal_places,
            "freshness_window_days": currency.freshness_window_days,
            "goal_mode": app.goal_mode,
            "fixed_lifestyle_mode": app.fixed_lifestyle_mode,
        }
        values.update(overrides)
        return cls(**values)

    def round_money(self, amount: float) -> float:
        return round(amount, self.money_places)

    def round_rate(self, rate: float) -> float:
        return round(rate, self.rate_places)
