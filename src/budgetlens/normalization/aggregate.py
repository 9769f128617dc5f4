"""Cross-period aggregation of an already normalized series."""

import decimal
from decimal import Decimal
from enum import Enum

from budgetlens.models.series import DataSeries
from budgetlens.normalization.pipeline import DECIMAL_CONTEXT


class AggregationMethod(str, Enum):
    SUM = "sum"
    AVERAGE = "average"
    MIN = "min"
    MAX = "max"


def aggregate(series: DataSeries, method: AggregationMethod | str = AggregationMethod.SUM) -> Decimal | None:
    """Collapse a normalized series into one number.

    only ever feed this the output of normalize_data. summing nominal values
    first and normalizing the total would apply one year's factor to every
    year.

    an empty series sums to 0 and has no average/min/max.
    """
    method = AggregationMethod(method)
    values = series.values

    with decimal.localcontext(DECIMAL_CONTEXT):
        if method == AggregationMethod.SUM:
            return sum(values, Decimal(0))
        if not values:
            return None
        if method == AggregationMethod.AVERAGE:
            return sum(values, Decimal(0)) / len(values)
        if method == AggregationMethod.MIN:
            return min(values)
        return max(values)
