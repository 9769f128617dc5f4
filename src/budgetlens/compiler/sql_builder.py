"""Series query builder.

takes a compiled filter and assembles the per-period sum query around it:

  SELECT eli.year, eli.<month|quarter>, SUM(<amount>)
  FROM executionlineitems eli
  [LEFT JOIN entities e ON eli.entity_cui = e.cui]
  [LEFT JOIN uats u ON e.uat_id = u.id]
  WHERE <conditions>
  GROUP BY period
  ORDER BY period

one row per period, never summed across periods - normalization factors are
per year, so totals are the caller's job after normalizing. aggregate amount
bounds are the caller's job too: they compare against normalized per-period
amounts, which only exist after the query has run.
"""

from dataclasses import dataclass

import sqlglot
from sqlglot.errors import SqlglotError

from budgetlens.compiler.conditions import render_placeholders, to_where_clause
from budgetlens.compiler.filter_compiler import CompiledFilter, JoinsRequired, compile_filter
from budgetlens.compiler.identifiers import (
    ENTITY_ALIAS,
    ENTITY_TABLE,
    LINE_ITEM_ALIAS,
    LINE_ITEM_TABLE,
    PERIOD_COLUMN_BY_FREQUENCY,
    UAT_ALIAS,
    UAT_TABLE,
    get_amount_column,
)
from budgetlens.models.filter import AnalyticsFilter, Frequency

# paramstyle per dialect
PLACEHOLDER_STYLES = {
    "duckdb": "qmark",
    "postgres": "numeric",
}


@dataclass(frozen=True)
class SeriesQuery:
    """An assembled query, ready for an executor."""

    sql: str
    params: tuple
    frequency: Frequency
    joins_required: JoinsRequired

    @property
    def has_period_column(self) -> bool:
        return PERIOD_COLUMN_BY_FREQUENCY[self.frequency] is not None


class SeriesQueryBuilder:
    """Builds per-period sum queries for a dialect."""

    def __init__(self, dialect: str = "duckdb") -> None:
        if dialect not in PLACEHOLDER_STYLES:
            raise ValueError(f"Unsupported dialect: {dialect}")
        self.dialect = dialect

    def build(self, compiled: CompiledFilter, frequency: Frequency) -> SeriesQuery:
        conditions, joins = compiled
        amount_ref = f"{LINE_ITEM_ALIAS}.{get_amount_column(frequency)}"
        period_refs = [f"{LINE_ITEM_ALIAS}.year"]
        sub_column = PERIOD_COLUMN_BY_FREQUENCY[frequency]
        if sub_column is not None:
            period_refs.append(f"{LINE_ITEM_ALIAS}.{sub_column}")

        select_exprs = [f"{LINE_ITEM_ALIAS}.year AS year"]
        if sub_column is not None:
            select_exprs.append(f"{LINE_ITEM_ALIAS}.{sub_column} AS period")
        select_exprs.append(f"SUM({amount_ref}) AS amount")

        parts = [f"SELECT {', '.join(select_exprs)}"]
        parts.append(f"FROM {LINE_ITEM_TABLE} {LINE_ITEM_ALIAS}")
        if joins.entity:
            parts.append(
                f"LEFT JOIN {ENTITY_TABLE} {ENTITY_ALIAS} "
                f"ON {LINE_ITEM_ALIAS}.entity_cui = {ENTITY_ALIAS}.cui"
            )
        if joins.territorial_unit:
            parts.append(
                f"LEFT JOIN {UAT_TABLE} {UAT_ALIAS} ON {ENTITY_ALIAS}.uat_id = {UAT_ALIAS}.id"
            )

        params: tuple = ()
        where = to_where_clause(conditions)
        if where is not None:
            parts.append(where.text)
            params += where.params

        parts.append(f"GROUP BY {', '.join(period_refs)}")
        parts.append(f"ORDER BY {', '.join(period_refs)}")

        sql = render_placeholders("\n".join(parts), PLACEHOLDER_STYLES[self.dialect])
        return SeriesQuery(sql=sql, params=params, frequency=frequency, joins_required=joins)

    def build_for_filter(self, filter: AnalyticsFilter) -> SeriesQuery:
        """Compile a filter and build its series query in one go."""
        return self.build(compile_filter(filter), filter.frequency)

    def format_sql(self, sql: str) -> str:
        return format_sql(sql, self.dialect)


def format_sql(sql: str, dialect: str = "duckdb") -> str:
    """Pretty-print with sqlglot, for display only.

    the executor always runs the unformatted text. if sqlglot can't parse
    something we generated, show the raw query instead.
    """
    try:
        parsed = sqlglot.parse_one(sql, dialect=dialect)
        return parsed.sql(dialect=dialect, pretty=True)
    except SqlglotError:
        return sql
