"""Normalization: factor tables, the transform pipeline and post-normalization aggregation."""

from budgetlens.normalization.aggregate import AggregationMethod, aggregate
from budgetlens.normalization.factors import (
    FactorValueError,
    build_factors,
    carry_forward,
    factor_map_from_points,
    parse_decimal,
)
from budgetlens.normalization.pipeline import (
    apply_amount_bounds,
    apply_currency,
    apply_growth,
    apply_inflation,
    apply_per_capita,
    apply_percent_gdp,
    normalize_data,
    normalize_series,
)

__all__ = [
    "AggregationMethod",
    "FactorValueError",
    "aggregate",
    "apply_amount_bounds",
    "apply_currency",
    "apply_growth",
    "apply_inflation",
    "apply_per_capita",
    "apply_percent_gdp",
    "build_factors",
    "carry_forward",
    "factor_map_from_points",
    "normalize_data",
    "normalize_series",
    "parse_decimal",
]
