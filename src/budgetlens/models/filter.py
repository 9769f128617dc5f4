"""Pydantic models for analytics filters.

a filter describes a slice of budget-execution line items. every dimension is
an explicit optional field - None or an empty list both mean "don't filter on
this", the compiler never turns them into a predicate.
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Frequency(str, Enum):
    """Reporting period granularity."""

    MONTH = "MONTH"
    QUARTER = "QUARTER"
    YEAR = "YEAR"


class AccountCategory(str, Enum):
    """Income vs expense line items.

    the short codes are what the line item table stores (venituri/cheltuieli).
    """

    INCOME = "vn"
    EXPENSE = "ch"


class PeriodInterval(BaseModel):
    """Inclusive period range, labels like "2023", "2023-06" or "2023-Q2"."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    start: str
    end: str


class PeriodSelection(BaseModel):
    """Either an interval or a list of discrete period labels."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    interval: PeriodInterval | None = None
    dates: list[str] | None = None


class ReportPeriod(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    type: Frequency
    selection: PeriodSelection


class ExclusionFilter(BaseModel):
    """Values to exclude.

    same shape as the inclusion side but no population or amount ranges -
    negating a range is better expressed as a tighter range.
    """

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    report_ids: list[str] | None = None
    entity_cuis: list[str] | None = None
    functional_codes: list[str] | None = None
    functional_prefixes: list[str] | None = None
    economic_codes: list[str] | None = None
    economic_prefixes: list[str] | None = None
    entity_types: list[str] | None = None
    uat_ids: list[str] | None = None
    county_codes: list[str] | None = None
    regions: list[str] | None = None


class AnalyticsFilter(BaseModel):
    """A declarative query over execution line items."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    # required
    account_category: AccountCategory
    report_period: ReportPeriod

    # line item dimensions
    report_type: str | None = None
    main_creditor_cui: str | None = None
    report_ids: list[str] | None = None
    entity_cuis: list[str] | None = None
    funding_source_ids: list[str] | None = None  # numeric ids, sent as strings by clients
    budget_sector_ids: list[str] | None = None
    expense_types: list[str] | None = None

    # classification codes
    functional_codes: list[str] | None = None
    functional_prefixes: list[str] | None = None
    economic_codes: list[str] | None = None
    economic_prefixes: list[str] | None = None
    program_codes: list[str] | None = None
    program_prefixes: list[str] | None = None

    # geography / entity level
    entity_types: list[str] | None = None
    is_uat: bool | None = None
    uat_ids: list[str] | None = None
    county_codes: list[str] | None = None
    regions: list[str] | None = None
    search: str | None = None
    min_population: int | None = None
    max_population: int | None = None

    # amounts - aggregate bounds apply to the normalized per-period amount,
    # item bounds to nominal rows
    aggregate_min_amount: Decimal | None = None
    aggregate_max_amount: Decimal | None = None
    item_min_amount: Decimal | None = None
    item_max_amount: Decimal | None = None

    exclude: ExclusionFilter | None = None

    @property
    def frequency(self) -> Frequency:
        return self.report_period.type
