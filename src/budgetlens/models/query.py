"""Pydantic models for analytics requests and query results.

a request pairs what to select (the filter) with how to present it (the
transformation options). the result keeps the sql next to the data - handy
when someone asks why a number looks off.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from budgetlens.models.filter import AnalyticsFilter
from budgetlens.models.normalization import TransformationOptions
from budgetlens.models.series import DataSeries


class AnalyticsRequest(BaseModel):
    """A filter plus the transformation the caller wants applied."""

    model_config = ConfigDict(frozen=True)

    filter: AnalyticsFilter
    options: TransformationOptions = Field(default_factory=TransformationOptions)


class QueryResult(BaseModel):
    """Raw per-period series fetched for a filter, before normalization."""

    sql: str
    params: list = Field(default_factory=list)
    series: DataSeries
    row_count: int
    execution_time_ms: float


class SeriesResult(BaseModel):
    """Normalized series plus the optional cross-period total."""

    series: DataSeries
    total: Decimal | None = None
