from budgetlens.executor.duckdb_executor import DuckDBExecutor

__all__ = ["DuckDBExecutor"]
