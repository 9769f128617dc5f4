"""SQL identifiers the compiler is allowed to emit.

table and column names are internal constants, never user input. anything
that ends up as an identifier in query text must come from here (or pass the
same identifier check for aliases).
"""

import re

from budgetlens.models.filter import Frequency

# default aliases, overridable through FilterContext
LINE_ITEM_ALIAS = "eli"
ENTITY_ALIAS = "e"
UAT_ALIAS = "u"

LINE_ITEM_TABLE = "executionlineitems"
ENTITY_TABLE = "entities"
UAT_TABLE = "uats"

LINE_ITEM_COLUMNS = frozenset(
    {
        "line_item_id",
        "entity_cui",
        "report_id",
        "year",
        "month",
        "quarter",
        "functional_code",
        "economic_code",
        "program_code",
        "monthly_amount",
        "quarterly_amount",
        "ytd_amount",
        "is_quarterly",
        "is_yearly",
        "account_category",
        "report_type",
        "main_creditor_cui",
        "funding_source_id",
        "budget_sector_id",
        "expense_type",
    }
)

ENTITY_COLUMNS = frozenset({"cui", "name", "entity_type", "uat_id", "is_uat"})

UAT_COLUMNS = frozenset({"id", "name", "county_code", "county_name", "region", "population"})

ALL_COLUMNS = LINE_ITEM_COLUMNS | ENTITY_COLUMNS | UAT_COLUMNS

AMOUNT_COLUMN_BY_FREQUENCY: dict[Frequency, str] = {
    Frequency.MONTH: "monthly_amount",
    Frequency.QUARTER: "quarterly_amount",
    Frequency.YEAR: "ytd_amount",
}

# sub-period column for tuple comparisons and grouping (none for yearly data)
PERIOD_COLUMN_BY_FREQUENCY: dict[Frequency, str | None] = {
    Frequency.MONTH: "month",
    Frequency.QUARTER: "quarter",
    Frequency.YEAR: None,
}

_IDENTIFIER_RE = re.compile(r"[a-z_][a-z0-9_]*")


def is_valid_identifier(name: str) -> bool:
    """Lowercase sql identifier without quoting needs."""
    return bool(_IDENTIFIER_RE.fullmatch(name))


def get_amount_column(frequency: Frequency) -> str:
    """Amount column for a frequency; anything unexpected falls back to ytd."""
    return AMOUNT_COLUMN_BY_FREQUENCY.get(frequency, "ytd_amount")
