"""budgetlens - filter compilation and normalization for budget-execution analytics."""

__version__ = "0.1.0"
