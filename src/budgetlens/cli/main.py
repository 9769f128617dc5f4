"""CLI for budgetlens."""

import json
from decimal import Decimal
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from budgetlens.compiler.filter_compiler import compile_filter
from budgetlens.compiler.periods import extract_year_range
from budgetlens.compiler.sql_builder import SeriesQueryBuilder
from budgetlens.compiler.timeout import statement_timeout_sql
from budgetlens.config import settings
from budgetlens.executor.duckdb_executor import DuckDBExecutor
from budgetlens.models.normalization import Currency, NormalizationMode, TransformationOptions
from budgetlens.models.series import DataSeries
from budgetlens.normalization.aggregate import aggregate
from budgetlens.normalization.pipeline import normalize_series
from budgetlens.parser.loader import load_factors, load_request, load_series
from budgetlens.store import AnalyticsStore
from budgetlens.utils.logging import configure_logging

app = typer.Typer(
    name="bl",
    help="budgetlens - budget execution filters and normalization",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    log_level: Annotated[
        str | None, typer.Option("--log-level", help="DEBUG, INFO, WARNING, ...")
    ] = None,
) -> None:
    configure_logging(log_level=log_level)


@app.command("compile")
def compile_request(
    request_path: Annotated[Path, typer.Argument(help="Request YAML (filter + options)")],
    show_sql: Annotated[bool, typer.Option("--sql", "-s", help="Show the series query")] = False,
    dialect: Annotated[
        str | None, typer.Option("--dialect", help="duckdb or postgres")
    ] = None,
    timeout_ms: Annotated[
        int | None, typer.Option("--timeout", help="Statement timeout in ms (postgres)")
    ] = None,
) -> None:
    """Compile a request's filter into conditions and join flags."""
    try:
        request = load_request(request_path)
        conditions, joins = compile_filter(request.filter)
    except Exception as e:
        console.print(f"[red]Error compiling filter: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Conditions ({len(conditions)})")
    table.add_column("#", style="dim")
    table.add_column("Condition", style="cyan")
    table.add_column("Params", style="green")
    for i, condition in enumerate(conditions, start=1):
        params = ", ".join(repr(p) for p in condition.params) or "-"
        table.add_row(str(i), escape(condition.text), escape(params))
    console.print(table)
    console.print(f"entity join: {joins.entity}  uat join: {joins.territorial_unit}")

    if not show_sql:
        return

    dialect = dialect or settings.sql_dialect
    try:
        builder = SeriesQueryBuilder(dialect)
        query = builder.build_for_filter(request.filter)
        sql = builder.format_sql(query.sql)
        if dialect == "postgres":
            timeout = timeout_ms if timeout_ms is not None else settings.query_timeout_ms
            sql = f"{statement_timeout_sql(timeout).unwrap()};\n{sql}"
    except Exception as e:
        console.print(f"[red]Error building SQL: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print()
    console.print(Syntax(sql, "sql", theme="monokai", line_numbers=True))
    console.print(escape(f"params: {list(query.params)!r}"))


def _options(
    normalization: str,
    currency: str,
    inflation: bool,
    growth: bool,
) -> TransformationOptions:
    return TransformationOptions(
        normalization=normalization,
        currency=currency,
        inflation_adjusted=inflation,
        show_period_growth=growth,
    )


@app.command()
def normalize(
    series_path: Annotated[Path, typer.Argument(help="Series YAML (frequency + data)")],
    factors_path: Annotated[Path, typer.Option("--factors", "-f", help="Factors YAML")],
    normalization: Annotated[
        str, typer.Option("--normalization", "-n", help="total, per_capita or percent_gdp")
    ] = NormalizationMode.TOTAL.value,
    currency: Annotated[
        str, typer.Option("--currency", "-c", help="RON, EUR or USD")
    ] = Currency.RON.value,
    inflation: Annotated[
        bool, typer.Option("--inflation", help="Adjust for inflation (CPI)")
    ] = False,
    growth: Annotated[bool, typer.Option("--growth", help="Period-over-period growth")] = False,
    carry: Annotated[
        bool, typer.Option("--carry-forward", help="Fill missing factor years from earlier ones")
    ] = False,
    output: Annotated[str, typer.Option("--output", "-o", help="table or json")] = "table",
) -> None:
    """Normalize a series with factor tables."""
    try:
        series = load_series(series_path)
        year_range = None
        if carry and series.data:
            year_range = (series.data[0].year, series.data[-1].year)
        factors = load_factors(factors_path, year_range=year_range)
        options = _options(normalization, currency, inflation, growth)
        normalized = normalize_series(series, options, factors)
    except Exception as e:
        console.print(f"[red]Error normalizing series: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    total = None if options.show_period_growth else aggregate(normalized)
    _output_series(normalized, total, output)


@app.command()
def query(
    request_path: Annotated[Path, typer.Argument(help="Request YAML (filter + options)")],
    db_path: Annotated[str | None, typer.Option("--db", help="DuckDB database path")] = None,
    factors_path: Annotated[
        Path | None, typer.Option("--factors", "-f", help="Factors YAML")
    ] = None,
    carry: Annotated[
        bool, typer.Option("--carry-forward", help="Fill missing factor years from earlier ones")
    ] = False,
    output: Annotated[str, typer.Option("--output", "-o", help="table or json")] = "table",
) -> None:
    """Run a request against a DuckDB file and print the normalized series."""
    try:
        request = load_request(request_path)
        factors = None
        if factors_path is not None:
            year_range = None
            if carry:
                years = extract_year_range(request.filter.report_period.selection)
                year_range = (years.start_year, years.end_year)
            factors = load_factors(factors_path, year_range=year_range)

        with AnalyticsStore(db_path or settings.duckdb_path) as store:
            result = store.run(request, factors)
    except Exception as e:
        console.print(f"[red]Query error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    _output_series(result.series, result.total, output)


@app.command("init-db")
def init_db(
    db_path: Annotated[str, typer.Option("--db", help="DuckDB database path")],
) -> None:
    """Create the line item, entity and uat tables."""
    try:
        with DuckDBExecutor(db_path) as executor:
            executor.create_schema()
    except Exception as e:
        console.print(f"[red]Error creating schema: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Created schema in {db_path}[/green]")


def _plain(value: Decimal) -> str:
    # division can leave exponents behind (2.0E+2), print fixed point
    return f"{value:f}"


def _output_series(series: DataSeries, total: Decimal | None, output_format: str) -> None:
    """Print a series as a table or as json (values as decimal strings)."""
    if output_format == "json":
        payload = {
            "frequency": series.frequency.value,
            "data": [{"date": p.date, "value": _plain(p.value)} for p in series.data],
            "total": _plain(total) if total is not None else None,
        }
        console.print(json.dumps(payload, indent=2), soft_wrap=True, markup=False)
        return

    table = Table(title=f"Series ({series.frequency.value}, {len(series.data)} periods)")
    table.add_column("Period", style="cyan")
    table.add_column("Value", justify="right")
    for point in series.data:
        table.add_row(point.date, _plain(point.value))
    console.print(table)
    if total is not None:
        console.print(f"total: {_plain(total)}")


if __name__ == "__main__":
    app()
