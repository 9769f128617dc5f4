"""Pytest fixtures for budgetlens tests."""

from collections.abc import Generator
from decimal import Decimal
from pathlib import Path

import pytest

from budgetlens.executor.duckdb_executor import DuckDBExecutor
from budgetlens.models import (
    AccountCategory,
    AnalyticsFilter,
    DataPoint,
    DataSeries,
    Frequency,
    NormalizationFactors,
    PeriodInterval,
    PeriodSelection,
    ReportPeriod,
)
from budgetlens.store import AnalyticsStore

UAT_COLUMNS = ["id", "name", "county_code", "county_name", "region", "population"]
ENTITY_COLUMNS = ["cui", "name", "entity_type", "uat_id", "is_uat"]
LINE_ITEM_COLUMNS = [
    "line_item_id",
    "report_id",
    "entity_cui",
    "report_type",
    "account_category",
    "year",
    "month",
    "quarter",
    "is_quarterly",
    "is_yearly",
    "functional_code",
    "economic_code",
    "funding_source_id",
    "budget_sector_id",
    "monthly_amount",
    "quarterly_amount",
    "ytd_amount",
]

REPORT_TYPE = "Executie bugetara detaliata"


def line_item(
    line_item_id: int,
    entity_cui: str,
    year: int,
    functional_code: str,
    economic_code: str | None,
    ytd_amount: str,
    account_category: str = "ch",
) -> tuple:
    """A december row flagged as both quarterly and yearly."""
    ytd = Decimal(ytd_amount)
    return (
        line_item_id,
        f"r{line_item_id}",
        entity_cui,
        REPORT_TYPE,
        account_category,
        year,
        12,
        4,
        True,
        True,
        functional_code,
        economic_code,
        1,
        1,
        ytd / 10,
        ytd / 4,
        ytd,
    )


@pytest.fixture
def sample_uats() -> list[tuple]:
    """Two counties plus a uat without a county (bucharest sector)."""
    return [
        (1, "Cluj-Napoca", "CJ", "Cluj", "Nord-Vest", 300000),
        (2, "Timisoara", "TM", "Timis", "Vest", 250000),
        (3, "Sector 1", None, None, "Bucuresti-Ilfov", 200000),
    ]


@pytest.fixture
def sample_entities() -> list[tuple]:
    return [
        ("100", "Primaria Cluj-Napoca", "uat", 1, True),
        ("200", "Primaria Timisoara", "uat", 2, True),
        ("300", "Primaria Sector 1", "uat", 3, True),
        ("400", "Ministerul Finantelor", "ministry", None, False),
    ]


@pytest.fixture
def sample_line_items() -> list[tuple]:
    """Expense totals: 3800 in 2022, 3850 in 2023. one income row in 2023."""
    return [
        line_item(1, "100", 2022, "65.02", "10.01", "1000"),
        line_item(2, "200", 2022, "65.03", "20.01", "2000"),
        line_item(3, "300", 2022, "66.01", "10.01", "500"),
        line_item(4, "400", 2022, "68.01", "20.01", "300"),
        line_item(5, "100", 2023, "65.02", "10.01", "1100"),
        line_item(6, "200", 2023, "65.03", "20.01", "2100"),
        line_item(7, "400", 2023, "6501", "20.01", "50"),
        line_item(8, "300", 2023, "66.01", "10.01", "600"),
        line_item(9, "100", 2023, "04.02", None, "5000", account_category="vn"),
    ]


def load_sample_data(
    executor: DuckDBExecutor,
    uats: list[tuple],
    entities: list[tuple],
    line_items: list[tuple],
) -> None:
    executor.create_schema()
    executor.insert_rows("uats", UAT_COLUMNS, uats)
    executor.insert_rows("entities", ENTITY_COLUMNS, entities)
    executor.insert_rows("executionlineitems", LINE_ITEM_COLUMNS, line_items)


@pytest.fixture
def db_with_data(
    sample_uats: list[tuple], sample_entities: list[tuple], sample_line_items: list[tuple]
) -> Generator[DuckDBExecutor, None, None]:
    """Create a DuckDB executor with the schema and sample rows."""
    executor = DuckDBExecutor()
    load_sample_data(executor, sample_uats, sample_entities, sample_line_items)
    yield executor
    executor.close()


@pytest.fixture
def store_with_data(
    sample_uats: list[tuple], sample_entities: list[tuple], sample_line_items: list[tuple]
) -> Generator[AnalyticsStore, None, None]:
    """Create an AnalyticsStore with loaded data."""
    store = AnalyticsStore()
    load_sample_data(store.executor, sample_uats, sample_entities, sample_line_items)
    yield store
    store.close()


@pytest.fixture
def db_file(
    tmp_path: Path,
    sample_uats: list[tuple],
    sample_entities: list[tuple],
    sample_line_items: list[tuple],
) -> Path:
    """A DuckDB file with sample data, closed so the cli can open it."""
    path = tmp_path / "budget.duckdb"
    with DuckDBExecutor(str(path)) as executor:
        load_sample_data(executor, sample_uats, sample_entities, sample_line_items)
    return path


def build_filter(
    frequency: Frequency = Frequency.YEAR,
    start: str = "2022",
    end: str = "2023",
    **fields,
) -> AnalyticsFilter:
    """Expense filter over an interval, with any extra fields."""
    fields.setdefault("account_category", AccountCategory.EXPENSE)
    return AnalyticsFilter(
        report_period=ReportPeriod(
            type=frequency,
            selection=PeriodSelection(interval=PeriodInterval(start=start, end=end)),
        ),
        **fields,
    )


@pytest.fixture
def make_filter():
    """Factory for expense filters."""
    return build_filter


@pytest.fixture
def yearly_filter() -> AnalyticsFilter:
    return build_filter()


def build_series(frequency: Frequency, *points: tuple[str, str]) -> DataSeries:
    return DataSeries(
        frequency=frequency,
        data=[DataPoint(date=date, value=Decimal(value)) for date, value in points],
    )


@pytest.fixture
def make_series():
    """Factory for series from (date, value-text) pairs."""
    return build_series


@pytest.fixture
def yearly_series() -> DataSeries:
    return build_series(Frequency.YEAR, ("2020", "1000"), ("2021", "1100"))


@pytest.fixture
def factors() -> NormalizationFactors:
    """CPI and EUR rates for 2020-2021, population and gdp for 2020 only."""
    return NormalizationFactors(
        cpi={2020: Decimal("1.0"), 2021: Decimal("1.05")},
        eur={2020: Decimal("5.0"), 2021: Decimal("5.0")},
        usd={2020: Decimal("4.0")},
        population={2020: Decimal("1000000")},
        gdp={2020: Decimal("100000")},
    )


@pytest.fixture
def request_yaml() -> str:
    return """
filter:
  account_category: ch
  report_period:
    type: YEAR
    selection:
      interval:
        start: "2022"
        end: "2023"
  functional_prefixes: ["65"]
  exclude:
    county_codes: [CJ]
options:
  normalization: total
  currency: EUR
"""


@pytest.fixture
def request_file(tmp_path: Path, request_yaml: str) -> Path:
    path = tmp_path / "request.yaml"
    path.write_text(request_yaml)
    return path


@pytest.fixture
def factors_yaml() -> str:
    return """
cpi:
  2022: 1.10
  2023: 1.00
eur:
  - x: "2022"
    y: 5.0
  - x: "2023"
    y: "4.0"
population:
  2022: 1000
"""


@pytest.fixture
def factors_file(tmp_path: Path, factors_yaml: str) -> Path:
    path = tmp_path / "factors.yaml"
    path.write_text(factors_yaml)
    return path


@pytest.fixture
def series_file(tmp_path: Path) -> Path:
    path = tmp_path / "series.yaml"
    path.write_text(
        """
frequency: YEAR
data:
  - date: "2022"
    value: 1000
  - date: "2023"
    value: 1100.50
"""
    )
    return path
