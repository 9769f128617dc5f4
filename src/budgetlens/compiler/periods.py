"""Period labels and period predicates.

labels come in three shapes: "2024" (year), "2024-03" (month) and "2024-Q1"
(quarter). for monthly and quarterly queries the filter has to compare
(year, month) / (year, quarter) pairs - filtering on year alone would pull in
the wrong months at the edges of an interval.
"""

import re
from dataclasses import dataclass
from datetime import date

from budgetlens.compiler.conditions import Condition, any_of, col, in_list
from budgetlens.compiler.identifiers import PERIOD_COLUMN_BY_FREQUENCY
from budgetlens.models.filter import Frequency, PeriodInterval, PeriodSelection

_YEAR_RE = re.compile(r"^(\d{4})$")
_MONTH_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")
_QUARTER_RE = re.compile(r"^(\d{4})-Q([1-4])$")


@dataclass(frozen=True)
class ParsedPeriod:
    """Components of a period label. month/quarter are None for yearly labels."""

    year: int
    month: int | None = None
    quarter: int | None = None

    def sub_period(self, frequency: Frequency) -> int | None:
        if frequency == Frequency.MONTH:
            return self.month
        if frequency == Frequency.QUARTER:
            return self.quarter
        return None


@dataclass(frozen=True)
class YearRange:
    start_year: int
    end_year: int


def parse_period_date(label: str) -> ParsedPeriod | None:
    """Parse a period label, None if it matches none of the three formats."""
    m = _YEAR_RE.match(label)
    if m:
        return ParsedPeriod(year=int(m.group(1)))

    m = _MONTH_RE.match(label)
    if m:
        return ParsedPeriod(year=int(m.group(1)), month=int(m.group(2)))

    m = _QUARTER_RE.match(label)
    if m:
        return ParsedPeriod(year=int(m.group(1)), quarter=int(m.group(2)))

    return None


def extract_year(label: str) -> int | None:
    """Year prefix of a label - works for anything starting with YYYY."""
    if len(label) < 4 or not label[:4].isdigit():
        return None
    return int(label[:4])


def format_date_from_row(year: int, period_value: int | None, frequency: Frequency) -> str:
    """Turn a (year, month|quarter) row back into a period label."""
    if frequency == Frequency.MONTH:
        return f"{year}-{period_value:02d}"
    if frequency == Frequency.QUARTER:
        return f"{year}-Q{period_value}"
    return str(year)


def generate_period_labels(
    start_year: int, end_year: int, frequency: Frequency = Frequency.YEAR
) -> list[str]:
    """All labels between two years (inclusive) at the given frequency."""
    labels = []
    for year in range(start_year, end_year + 1):
        if frequency == Frequency.MONTH:
            labels.extend(f"{year}-{month:02d}" for month in range(1, 13))
        elif frequency == Frequency.QUARTER:
            labels.extend(f"{year}-Q{quarter}" for quarter in range(1, 5))
        else:
            labels.append(str(year))
    return labels


def extract_year_range(selection: PeriodSelection, fallback_year: int | None = None) -> YearRange:
    """Years spanned by a selection - used to decide which factor years to load.

    falls back to the current year for anything that can't be parsed.
    """
    default = fallback_year if fallback_year is not None else date.today().year
    start_year = end_year = default

    if selection.interval is not None:
        parsed_start = extract_year(selection.interval.start)
        parsed_end = extract_year(selection.interval.end)
        if parsed_start is not None:
            start_year = parsed_start
        if parsed_end is not None:
            end_year = parsed_end
    elif selection.dates:
        years = [y for y in (extract_year(d) for d in selection.dates) if y is not None]
        if years:
            start_year, end_year = min(years), max(years)

    return YearRange(start_year=start_year, end_year=end_year)


# --- predicates ---


def build_period_conditions(
    selection: PeriodSelection, frequency: Frequency, alias: str
) -> list[Condition]:
    """Frequency flag plus interval and/or discrete-date predicates."""
    conditions = []

    # quarterly and yearly figures live on flagged rows of the same table
    if frequency == Frequency.QUARTER:
        conditions.append(Condition(f"{col(alias, 'is_quarterly')} = TRUE"))
    elif frequency == Frequency.YEAR:
        conditions.append(Condition(f"{col(alias, 'is_yearly')} = TRUE"))

    if selection.interval is not None:
        conditions.extend(_interval_conditions(selection.interval, frequency, alias))

    if selection.dates:
        date_condition = _date_list_condition(selection.dates, frequency, alias)
        if date_condition is not None:
            conditions.append(date_condition)

    return conditions


def _tuple_bound(alias: str, sub_column: str, operator: str, year: int, sub: int) -> Condition:
    """(year, sub) >= / <= (y, s), expanded so it doesn't rely on row-value support."""
    strict = ">" if operator == ">=" else "<"
    year_ref = col(alias, "year")
    sub_ref = col(alias, sub_column)
    return Condition(
        f"({year_ref} {strict} ? OR ({year_ref} = ? AND {sub_ref} {operator} ?))",
        (year, year, sub),
    )


def _interval_conditions(
    interval: PeriodInterval, frequency: Frequency, alias: str
) -> list[Condition]:
    start = parse_period_date(interval.start)
    end = parse_period_date(interval.end)
    sub_column = PERIOD_COLUMN_BY_FREQUENCY[frequency]

    if sub_column is not None and start is not None and end is not None:
        start_sub = start.sub_period(frequency)
        end_sub = end.sub_period(frequency)
        if start_sub is not None and end_sub is not None:
            return [
                _tuple_bound(alias, sub_column, ">=", start.year, start_sub),
                _tuple_bound(alias, sub_column, "<=", end.year, end_sub),
            ]

    # yearly, or labels coarser than the frequency: bound on year only
    conditions = []
    start_year = start.year if start is not None else extract_year(interval.start)
    end_year = end.year if end is not None else extract_year(interval.end)
    if start_year is not None:
        conditions.append(Condition(f"{col(alias, 'year')} >= ?", (start_year,)))
    if end_year is not None:
        conditions.append(Condition(f"{col(alias, 'year')} <= ?", (end_year,)))
    return conditions


def _date_list_condition(
    dates: list[str], frequency: Frequency, alias: str
) -> Condition | None:
    sub_column = PERIOD_COLUMN_BY_FREQUENCY[frequency]

    if sub_column is None:
        years = [y for y in (extract_year(d) for d in dates) if y is not None]
        if not years:
            return None
        return in_list(col(alias, "year"), years)

    pairs = []
    for label in dates:
        parsed = parse_period_date(label)
        sub = parsed.sub_period(frequency) if parsed is not None else None
        if parsed is not None and sub is not None:
            pairs.append(
                Condition(
                    f"({col(alias, 'year')} = ? AND {col(alias, sub_column)} = ?)",
                    (parsed.year, sub),
                )
            )

    if not pairs:
        return None
    return any_of(pairs)
