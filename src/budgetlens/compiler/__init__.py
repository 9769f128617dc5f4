"""Filter compilation: conditions, periods, the compiler itself and the series query."""

from budgetlens.compiler.conditions import Condition, escape_like_wildcards, render_placeholders
from budgetlens.compiler.filter_compiler import (
    CompiledFilter,
    FilterCompiler,
    FilterContext,
    JoinsRequired,
    compile_filter,
    create_filter_context,
    needs_entity_join,
    needs_uat_join,
)
from budgetlens.compiler.sql_builder import SeriesQuery, SeriesQueryBuilder, format_sql
from budgetlens.compiler.timeout import (
    DEFAULT_QUERY_TIMEOUT_MS,
    TimeoutValidationError,
    statement_timeout_sql,
    validate_timeout,
)

__all__ = [
    "DEFAULT_QUERY_TIMEOUT_MS",
    "CompiledFilter",
    "Condition",
    "FilterCompiler",
    "FilterContext",
    "JoinsRequired",
    "SeriesQuery",
    "SeriesQueryBuilder",
    "TimeoutValidationError",
    "compile_filter",
    "create_filter_context",
    "escape_like_wildcards",
    "format_sql",
    "needs_entity_join",
    "needs_uat_join",
    "render_placeholders",
    "statement_timeout_sql",
    "validate_timeout",
]
