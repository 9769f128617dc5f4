"""Main AnalyticsStore interface for budgetlens."""

from decimal import Decimal

from budgetlens.compiler.sql_builder import SeriesQuery, SeriesQueryBuilder
from budgetlens.executor.duckdb_executor import DuckDBExecutor
from budgetlens.models.filter import AnalyticsFilter
from budgetlens.models.normalization import NormalizationFactors, TransformationOptions
from budgetlens.models.query import AnalyticsRequest, QueryResult, SeriesResult
from budgetlens.models.series import DataSeries
from budgetlens.normalization.aggregate import AggregationMethod, aggregate
from budgetlens.normalization.pipeline import normalize_data


class AnalyticsStore:
    """Main interface for budgetlens.

    wires the pieces together in the only order that's correct:
    compile -> execute -> normalize per period -> amount bounds -> aggregate.
    """

    def __init__(self, database_path: str | None = None) -> None:
        """Initialize the store.

        Args:
            database_path: Path to DuckDB file, or None for in-memory.
        """
        self.builder = SeriesQueryBuilder(dialect="duckdb")
        self.executor = DuckDBExecutor(database_path)

    def get_sql(self, filter: AnalyticsFilter) -> SeriesQuery:
        """Get the series query without executing it."""
        return self.builder.build_for_filter(filter)

    def fetch_series(self, filter: AnalyticsFilter) -> QueryResult:
        """Raw per-period nominal series for a filter."""
        return self.executor.execute(self.get_sql(filter))

    def series(
        self,
        filter: AnalyticsFilter,
        options: TransformationOptions | None = None,
        factors: NormalizationFactors | None = None,
    ) -> SeriesResult:
        """Normalized series plus its total.

        the filter's aggregate amount bounds are checked against the
        normalized per-period amounts, in the output unit. the total is summed
        from the points that remain. with growth turned on a total doesn't
        mean anything, so it's left out.
        """
        options = options or TransformationOptions()
        factors = factors or NormalizationFactors()
        normalized = self._normalized(filter, options, factors)

        total = None if options.show_period_growth else aggregate(normalized, AggregationMethod.SUM)
        return SeriesResult(series=normalized, total=total)

    def run(self, request: AnalyticsRequest, factors: NormalizationFactors | None = None) -> SeriesResult:
        """Same as series() for a loaded request document."""
        return self.series(request.filter, request.options, factors)

    def total(
        self,
        filter: AnalyticsFilter,
        options: TransformationOptions | None = None,
        factors: NormalizationFactors | None = None,
        method: AggregationMethod | str = AggregationMethod.SUM,
    ) -> Decimal | None:
        """Aggregate of the normalized series.

        normalize first, aggregate second - summing nominal values across
        years and normalizing the sum would apply a single year's factors to
        every year.
        """
        options = options or TransformationOptions()
        factors = factors or NormalizationFactors()
        return aggregate(self._normalized(filter, options, factors), method)

    def _normalized(
        self,
        filter: AnalyticsFilter,
        options: TransformationOptions,
        factors: NormalizationFactors,
    ) -> DataSeries:
        raw = self.fetch_series(filter)
        return normalize_data(
            raw.series,
            options,
            factors,
            min_amount=filter.aggregate_min_amount,
            max_amount=filter.aggregate_max_amount,
        )

    def close(self) -> None:
        """Close database connection."""
        self.executor.close()

    def __enter__(self) -> "AnalyticsStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
