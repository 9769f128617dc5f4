"""Normalization pipeline.

turns a per-period nominal series into whatever unit the caller asked for.
the order is fixed:

  percent_gdp  -> value / gdp * 100, and nothing else
  otherwise    -> inflation, then currency, then per capita
  bounds       -> drop periods outside the aggregate min/max amount
  growth       -> always last, on top of either branch

percent_gdp skips inflation and currency on purpose: both numerator and gdp
are nominal local currency, so those adjustments cancel out.

every transform is a map over the points - same length, same labels, new
objects, except the bounds step, which drops points. inputs are never
modified. missing factor years degrade quietly, but not all in the same way
(see each transform).
"""

import decimal
from decimal import Decimal

import structlog

from budgetlens.compiler.conditions import is_finite_number
from budgetlens.models.normalization import (
    LOCAL_CURRENCY,
    Currency,
    NormalizationFactors,
    NormalizationMode,
    TransformationOptions,
)
from budgetlens.models.series import DataPoint, DataSeries

log = structlog.get_logger(__name__)

# enough digits that chained multiply/divide never rounds anything a
# currency amount would show
DECIMAL_CONTEXT = decimal.Context(prec=50, rounding=decimal.ROUND_HALF_EVEN)

ONE = Decimal(1)
ZERO = Decimal(0)
HUNDRED = Decimal(100)


def _with_value(point: DataPoint, value: Decimal) -> DataPoint:
    return DataPoint(date=point.date, value=value)


def apply_inflation(data: list[DataPoint], cpi: dict[int, Decimal]) -> list[DataPoint]:
    """Multiply by the year's CPI factor. missing year -> factor 1."""
    with decimal.localcontext(DECIMAL_CONTEXT):
        return [_with_value(p, p.value * cpi.get(p.year, ONE)) for p in data]


def apply_currency(
    data: list[DataPoint], currency: Currency, factors: NormalizationFactors
) -> list[DataPoint]:
    """Divide by the exchange rate for the year.

    local currency is a no-op. a missing year uses rate 1, a zero rate
    leaves the value as it is.
    """
    if currency == LOCAL_CURRENCY:
        return list(data)

    rates = factors.rate_for(currency)
    result = []
    with decimal.localcontext(DECIMAL_CONTEXT):
        for p in data:
            rate = rates.get(p.year, ONE)
            result.append(p if rate.is_zero() else _with_value(p, p.value / rate))
    return result


def apply_per_capita(data: list[DataPoint], population: dict[int, Decimal]) -> list[DataPoint]:
    """Divide by population. missing or zero population -> value unchanged."""
    result = []
    with decimal.localcontext(DECIMAL_CONTEXT):
        for p in data:
            head_count = population.get(p.year)
            if head_count is None or head_count.is_zero():
                result.append(p)
            else:
                result.append(_with_value(p, p.value / head_count))
    return result


def apply_percent_gdp(data: list[DataPoint], gdp: dict[int, Decimal]) -> list[DataPoint]:
    """value / gdp * 100.

    unlike per capita, a missing or zero gdp forces the value to 0.
    """
    result = []
    with decimal.localcontext(DECIMAL_CONTEXT):
        for p in data:
            year_gdp = gdp.get(p.year)
            if year_gdp is None or year_gdp.is_zero():
                result.append(_with_value(p, ZERO))
            else:
                result.append(_with_value(p, p.value / year_gdp * HUNDRED))
    return result


def apply_growth(data: list[DataPoint]) -> list[DataPoint]:
    """Period-over-period change in percent.

    the first point has no previous period so it's 0, same for any point
    whose previous value is 0.
    """
    result = []
    with decimal.localcontext(DECIMAL_CONTEXT):
        for i, p in enumerate(data):
            previous = data[i - 1].value if i > 0 else None
            if previous is None or previous.is_zero():
                result.append(_with_value(p, ZERO))
            else:
                result.append(_with_value(p, (p.value - previous) / previous * HUNDRED))
    return result


def apply_amount_bounds(
    data: list[DataPoint],
    minimum: Decimal | None = None,
    maximum: Decimal | None = None,
) -> list[DataPoint]:
    """Keep the periods whose amount lies within [minimum, maximum].

    bounds are in the output unit, so this runs on normalized amounts.
    None or non-finite bounds don't filter.
    """
    result = list(data)
    if is_finite_number(minimum):
        result = [p for p in result if p.value >= minimum]
    if is_finite_number(maximum):
        result = [p for p in result if p.value <= maximum]
    return result


def normalize_points(
    data: list[DataPoint],
    options: TransformationOptions,
    factors: NormalizationFactors,
    min_amount: Decimal | None = None,
    max_amount: Decimal | None = None,
) -> list[DataPoint]:
    """Run the pipeline over a bare point list."""
    result = list(data)

    if options.normalization == NormalizationMode.PERCENT_GDP:
        result = apply_percent_gdp(result, factors.gdp)
    else:
        if options.inflation_adjusted:
            result = apply_inflation(result, factors.cpi)
        if options.currency != LOCAL_CURRENCY:
            result = apply_currency(result, options.currency, factors)
        if options.normalization == NormalizationMode.PER_CAPITA:
            result = apply_per_capita(result, factors.population)

    result = apply_amount_bounds(result, min_amount, max_amount)

    if options.show_period_growth:
        result = apply_growth(result)

    return result


def normalize_data(
    series: DataSeries,
    options: TransformationOptions,
    factors: NormalizationFactors,
    min_amount: Decimal | None = None,
    max_amount: Decimal | None = None,
) -> DataSeries:
    """Normalize a raw per-period series.

    call this on per-period values, before summing anything across periods -
    the factors differ per year. min_amount/max_amount drop periods whose
    normalized amount falls outside the bounds; growth is computed over the
    periods that remain.
    """
    points = normalize_points(series.data, options, factors, min_amount, max_amount)
    log.debug(
        "series_normalized",
        points=len(points),
        frequency=series.frequency.value,
        normalization=options.normalization.value,
        currency=options.currency.value,
        inflation_adjusted=options.inflation_adjusted,
        growth=options.show_period_growth,
    )
    return series.with_points(points)


# same thing under the name the store and cli use
normalize_series = normalize_data
