"""fx.py — Schemas for GET /api/fx."""

import math
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class FxRatesResponse(BaseModel):
    """Multipliers converting one unit of each currency into USD."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    rates_to_usd: dict[str, float]
    source: Literal["live"] = "live"
    updated_at: Optional[str] = None

    @field_validator("rates_to_usd")
    @classmethod
    def _positive_rates(cls, rates: dict[str, float]) -> dict[str, float]:
        for currency, rate in rates.items():
            if not math.isfinite(rate) or rate <= 0:
                raise ValueError(f"rate for {currency} must be finite and positive")
        return rates


class FxErrorResponse(BaseModel):
    error: str
