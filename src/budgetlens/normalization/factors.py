"""Factor tables - turning dataset points into year-indexed decimal maps.

datasets come in as (label, value) points where the label is a period like
"2023", "2023-Q1" or "2023-01". normalization looks factors up by year only,
so points are keyed by the year prefix of their label.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from budgetlens.models.normalization import NormalizationFactors

FactorMap = dict[int, Decimal]


class FactorValueError(ValueError):
    """A dataset value that isn't a finite decimal literal."""

    def __init__(self, message: str, dataset: str | None = None, label: str | None = None) -> None:
        super().__init__(message)
        self.dataset = dataset
        self.label = label


def parse_decimal(raw: Any, *, dataset: str | None = None, label: str | None = None) -> Decimal:
    """Parse a factor value without going through float.

    accepts decimal text, ints and Decimals. floats are refused - by the time
    a value is a float the binary rounding has already happened.
    """
    where = f" in {dataset}" if dataset else ""
    where += f" at {label}" if label else ""

    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, bool) or isinstance(raw, float):
        raise FactorValueError(
            f"Factor value{where} must be decimal text, got {type(raw).__name__}: {raw!r}",
            dataset=dataset,
            label=label,
        )
    elif isinstance(raw, (int, str)):
        try:
            value = Decimal(str(raw).strip())
        except InvalidOperation:
            raise FactorValueError(
                f"Malformed decimal literal{where}: {raw!r}", dataset=dataset, label=label
            ) from None
    else:
        raise FactorValueError(
            f"Unsupported factor value{where}: {raw!r}", dataset=dataset, label=label
        )

    if not value.is_finite():
        raise FactorValueError(
            f"Factor value{where} must be finite, got {raw!r}", dataset=dataset, label=label
        )
    return value


def _year_of(label: Any) -> int | None:
    text = str(label)
    if len(text) < 4 or not text[:4].isdigit():
        return None
    return int(text[:4])


def factor_map_from_points(
    points: Iterable[tuple[Any, Any]], dataset: str | None = None
) -> FactorMap:
    """Build a year -> value map from (label, value) points.

    labels without a year prefix are skipped. if several points share a year
    (quarterly or monthly datasets) the last one wins.
    """
    result: FactorMap = {}
    for label, raw in points:
        year = _year_of(label)
        if year is None:
            continue
        result[year] = parse_decimal(raw, dataset=dataset, label=str(label))
    return result


def carry_forward(factor_map: Mapping[int, Decimal], start_year: int, end_year: int) -> FactorMap:
    """Fill missing years in [start_year, end_year] with the latest earlier value.

    exchange rates and price indices don't reset to nothing when a dataset
    lags, so the previous year is a better guess than the transform's default.
    years before the first known value stay missing - we never back-fill.
    """
    filled: FactorMap = {}
    previous: Decimal | None = None

    # seed from the latest value before the range
    earlier = [year for year in factor_map if year < start_year]
    if earlier:
        previous = factor_map[max(earlier)]

    for year in range(start_year, end_year + 1):
        value = factor_map.get(year, previous)
        if value is not None:
            filled[year] = value
            previous = value

    # keep anything outside the range untouched
    for year, value in factor_map.items():
        filled.setdefault(year, value)
    return filled


def build_factors(
    cpi: Mapping[int, Decimal] | None = None,
    eur: Mapping[int, Decimal] | None = None,
    usd: Mapping[int, Decimal] | None = None,
    population: Mapping[int, Decimal] | None = None,
    gdp: Mapping[int, Decimal] | None = None,
    year_range: tuple[int, int] | None = None,
) -> NormalizationFactors:
    """Assemble NormalizationFactors, optionally carrying values forward over a year range.

    population is never carried forward; per-capita passes values through
    for missing years instead.
    """
    maps = {"cpi": cpi, "eur": eur, "usd": usd, "population": population, "gdp": gdp}
    resolved = {name: dict(m or {}) for name, m in maps.items()}

    if year_range is not None:
        start_year, end_year = year_range
        for name in ("cpi", "eur", "usd", "gdp"):
            resolved[name] = carry_forward(resolved[name], start_year, end_year)

    return NormalizationFactors(**resolved)
