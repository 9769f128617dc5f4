"""Pydantic models for budgetlens."""

from budgetlens.models.filter import (
    AccountCategory,
    AnalyticsFilter,
    ExclusionFilter,
    Frequency,
    PeriodInterval,
    PeriodSelection,
    ReportPeriod,
)
from budgetlens.models.normalization import (
    LOCAL_CURRENCY,
    Currency,
    NormalizationFactors,
    NormalizationMode,
    TransformationOptions,
)
from budgetlens.models.query import AnalyticsRequest, QueryResult, SeriesResult
from budgetlens.models.series import DataPoint, DataSeries, single_point_series

__all__ = [
    "LOCAL_CURRENCY",
    "AccountCategory",
    "AnalyticsFilter",
    "AnalyticsRequest",
    "Currency",
    "DataPoint",
    "DataSeries",
    "ExclusionFilter",
    "Frequency",
    "NormalizationFactors",
    "NormalizationMode",
    "PeriodInterval",
    "PeriodSelection",
    "QueryResult",
    "ReportPeriod",
    "SeriesResult",
    "TransformationOptions",
    "single_point_series",
]
