"""DuckDB executor for budgetlens.

the compiler never runs anything itself - this is the reference
implementation of the query side: embedded, no server, and the in-memory
mode makes it easy to test the compiled predicates against real rows
(NULL handling in particular is something you want to see execute, not just
eyeball in the sql).
"""

import time
from decimal import Decimal
from typing import Any

import duckdb
import structlog

from budgetlens.compiler.identifiers import (
    ENTITY_COLUMNS,
    ENTITY_TABLE,
    LINE_ITEM_COLUMNS,
    LINE_ITEM_TABLE,
    UAT_COLUMNS,
    UAT_TABLE,
)
from budgetlens.compiler.periods import format_date_from_row
from budgetlens.compiler.sql_builder import SeriesQuery
from budgetlens.models.query import QueryResult
from budgetlens.models.series import DataPoint, DataSeries

log = structlog.get_logger(__name__)

# entity and uat columns that reference other rows are nullable on purpose -
# plenty of entities have no uat, and uats without a county exist (bucharest)
SCHEMA_DDL = {
    UAT_TABLE: """
        CREATE TABLE IF NOT EXISTS uats (
            id INTEGER PRIMARY KEY,
            name VARCHAR NOT NULL,
            county_code VARCHAR,
            county_name VARCHAR,
            region VARCHAR,
            population INTEGER
        )
    """,
    ENTITY_TABLE: """
        CREATE TABLE IF NOT EXISTS entities (
            cui VARCHAR PRIMARY KEY,
            name VARCHAR NOT NULL,
            entity_type VARCHAR,
            uat_id INTEGER,
            is_uat BOOLEAN NOT NULL DEFAULT FALSE
        )
    """,
    LINE_ITEM_TABLE: """
        CREATE TABLE IF NOT EXISTS executionlineitems (
            line_item_id BIGINT PRIMARY KEY,
            report_id VARCHAR NOT NULL,
            entity_cui VARCHAR NOT NULL,
            main_creditor_cui VARCHAR,
            report_type VARCHAR NOT NULL,
            account_category VARCHAR NOT NULL,
            year INTEGER NOT NULL,
            month INTEGER NOT NULL,
            quarter INTEGER NOT NULL,
            is_quarterly BOOLEAN NOT NULL DEFAULT FALSE,
            is_yearly BOOLEAN NOT NULL DEFAULT FALSE,
            functional_code VARCHAR NOT NULL,
            economic_code VARCHAR,
            program_code VARCHAR,
            funding_source_id INTEGER NOT NULL,
            budget_sector_id INTEGER NOT NULL,
            expense_type VARCHAR,
            monthly_amount DECIMAL(18, 2) NOT NULL DEFAULT 0,
            quarterly_amount DECIMAL(18, 2),
            ytd_amount DECIMAL(18, 2) NOT NULL DEFAULT 0
        )
    """,
}

TABLE_COLUMNS = {
    LINE_ITEM_TABLE: LINE_ITEM_COLUMNS,
    ENTITY_TABLE: ENTITY_COLUMNS,
    UAT_TABLE: UAT_COLUMNS,
}


def _to_decimal(value: Any) -> Decimal:
    """SUM over a DECIMAL column comes back as Decimal; NULL means no amounts."""
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class DuckDBExecutor:
    """Run series queries against DuckDB.

    one lazily opened connection per instance. duckdb connections aren't
    meant to be shared between threads, so make one executor per worker.
    """

    def __init__(self, database_path: str | None = None) -> None:
        """Initialize the executor.

        Args:
            database_path: Path to DuckDB file, or None for in-memory.
        """
        self.database_path = database_path
        self._conn: duckdb.DuckDBPyConnection | None = None  # lazy init

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            self._conn = duckdb.connect(self.database_path or ":memory:")
        return self._conn

    def create_schema(self) -> None:
        """Create the three tables if they don't exist yet."""
        for table in (UAT_TABLE, ENTITY_TABLE, LINE_ITEM_TABLE):
            self.conn.execute(SCHEMA_DDL[table])

    def execute(self, query: SeriesQuery) -> QueryResult:
        """Run a series query and turn its rows into a DataSeries.

        rows come back as (year, [period,] amount), already ordered by period.
        errors from duckdb propagate as they are.
        """
        start = time.perf_counter()

        rows = self.conn.execute(query.sql, list(query.params)).fetchall()

        elapsed_ms = (time.perf_counter() - start) * 1000

        points = []
        for row in rows:
            if query.has_period_column:
                year, period, amount = row
            else:
                year, amount = row
                period = None
            points.append(
                DataPoint(
                    date=format_date_from_row(year, period, query.frequency),
                    value=_to_decimal(amount),
                )
            )

        log.info(
            "query_executed",
            rows=len(rows),
            frequency=query.frequency.value,
            elapsed_ms=round(elapsed_ms, 2),
        )

        return QueryResult(
            sql=query.sql,
            params=list(query.params),
            series=DataSeries(frequency=query.frequency, data=points),
            row_count=len(rows),
            execution_time_ms=round(elapsed_ms, 2),
        )

    def insert_rows(self, table_name: str, columns: list[str], rows: list[tuple[Any, ...]]) -> None:
        """Insert rows into one of the schema tables.

        mostly for tests and small fixtures. table and column names are
        checked against the schema since they end up in the statement text.
        """
        if table_name not in TABLE_COLUMNS:
            raise ValueError(f"Unknown table: {table_name}")
        unknown = [c for c in columns if c not in TABLE_COLUMNS[table_name]]
        if unknown:
            raise ValueError(f"Unknown columns for {table_name}: {', '.join(unknown)}")
        if not rows:
            return

        placeholders = ", ".join(["?"] * len(columns))
        self.conn.executemany(
            f"INSERT INTO {table_name} ({', '.join(columns)}) VALUES ({placeholders})",
            rows,
        )

    def table_exists(self, table_name: str) -> bool:
        result = self.conn.execute(
            "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?",
            [table_name],
        )
        return result.fetchone()[0] > 0

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DuckDBExecutor":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
