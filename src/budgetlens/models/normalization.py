"""Pydantic models for normalization options and factor tables."""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class NormalizationMode(str, Enum):
    """How values are scaled.

    per_capita and percent_gdp are modes, not flags - they don't compose.
    """

    TOTAL = "total"
    PER_CAPITA = "per_capita"
    PERCENT_GDP = "percent_gdp"


class Currency(str, Enum):
    RON = "RON"  # local currency, conversion is a no-op
    EUR = "EUR"
    USD = "USD"


LOCAL_CURRENCY = Currency.RON

# older clients send the currency baked into the mode name
LEGACY_MODES: dict[str, tuple[NormalizationMode, Currency]] = {
    "total_euro": (NormalizationMode.TOTAL, Currency.EUR),
    "per_capita_euro": (NormalizationMode.PER_CAPITA, Currency.EUR),
}


class TransformationOptions(BaseModel):
    """The output shape a caller asked for."""

    model_config = ConfigDict(frozen=True)

    normalization: NormalizationMode = NormalizationMode.TOTAL
    currency: Currency = LOCAL_CURRENCY
    inflation_adjusted: bool = False
    show_period_growth: bool = False

    @model_validator(mode="before")
    @classmethod
    def map_legacy_modes(cls, data: Any) -> Any:
        """Translate total_euro / per_capita_euro into mode + currency.

        an explicit currency wins over the one implied by the legacy name.
        """
        if isinstance(data, dict):
            mode = data.get("normalization")
            if isinstance(mode, str) and mode in LEGACY_MODES:
                normalization, currency = LEGACY_MODES[mode]
                data = {**data, "normalization": normalization}
                if data.get("currency") is None:
                    data["currency"] = currency
        return data


class NormalizationFactors(BaseModel):
    """Year-indexed correction factors.

    a missing year is a normal state (datasets lag the budget data), each
    transform decides its own default. non-finite decimals are rejected here
    so the pipeline never has to think about NaN.
    """

    model_config = ConfigDict(frozen=True)

    cpi: dict[int, Decimal] = Field(default_factory=dict)
    eur: dict[int, Decimal] = Field(default_factory=dict)
    usd: dict[int, Decimal] = Field(default_factory=dict)
    population: dict[int, Decimal] = Field(default_factory=dict)
    gdp: dict[int, Decimal] = Field(default_factory=dict)

    @field_validator("cpi", "eur", "usd", "population", "gdp")
    @classmethod
    def require_finite(cls, v: dict[int, Decimal]) -> dict[int, Decimal]:
        for year, value in v.items():
            if not value.is_finite():
                raise ValueError(f"Factor for year {year} must be finite, got {value}")
        return v

    def rate_for(self, currency: Currency) -> dict[int, Decimal]:
        """Exchange rate map for a currency (empty for the local currency)."""
        if currency == Currency.EUR:
            return self.eur
        if currency == Currency.USD:
            return self.usd
        return {}
