"""Pydantic models for per-period time series.

values are always decimal.Decimal - float never enters the series, so chained
multiply/divide steps in normalization don't pick up binary rounding error.
"""

import re
from decimal import Decimal
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from budgetlens.models.filter import Frequency

# label format per frequency, e.g. 2024 / 2024-Q1 / 2024-03
LABEL_PATTERNS: dict[Frequency, re.Pattern[str]] = {
    Frequency.YEAR: re.compile(r"^\d{4}$"),
    Frequency.QUARTER: re.compile(r"^\d{4}-Q[1-4]$"),
    Frequency.MONTH: re.compile(r"^\d{4}-(0[1-9]|1[0-2])$"),
}


class DataPoint(BaseModel):
    """One observation: a period label and its value."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    date: str  # YYYY, YYYY-QN or YYYY-MM
    value: Decimal

    @property
    def year(self) -> int:
        """Year used for factor lookups - the first four characters of the label."""
        return int(self.date[:4])


class DataSeries(BaseModel):
    """An ordered series with a single frequency.

    labels sort lexicographically in period order for all three formats, so
    a plain string comparison is enough to check ordering.
    """

    model_config = ConfigDict(frozen=True)

    frequency: Frequency
    data: list[DataPoint] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_labels(self) -> Self:
        pattern = LABEL_PATTERNS[self.frequency]
        previous: str | None = None
        for point in self.data:
            if not pattern.match(point.date):
                raise ValueError(
                    f"Period label '{point.date}' doesn't match frequency {self.frequency.value}"
                )
            if previous is not None and point.date <= previous:
                raise ValueError(
                    f"Period labels must be distinct and ascending: '{previous}' then '{point.date}'"
                )
            previous = point.date
        return self

    def with_points(self, points: list[DataPoint]) -> "DataSeries":
        """New series with the same frequency and different points."""
        return DataSeries(frequency=self.frequency, data=points)

    @property
    def dates(self) -> list[str]:
        return [p.date for p in self.data]

    @property
    def values(self) -> list[Decimal]:
        return [p.value for p in self.data]


def single_point_series(date: str, value: Decimal, frequency: Frequency) -> DataSeries:
    """Series holding one period, for point-in-time totals that still need normalizing."""
    return DataSeries(frequency=frequency, data=[DataPoint(date=date, value=value)])
