"""Condition primitives for parameterized predicates.

a Condition is query text with `?` placeholders plus the values bound to
them, in order. combining conditions concatenates both halves, so values
never touch the text - the driver binds them.

LIKE patterns get their own escaping on top of that: binding stops sql
injection but a bound '65_' is still a wildcard pattern. escape_like_wildcards
makes user prefixes match literally, and every LIKE carries an explicit
ESCAPE clause since duckdb has no default escape character.
"""

import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from budgetlens.compiler.identifiers import ALL_COLUMNS, is_valid_identifier

LIKE_ESCAPE = "ESCAPE '\\'"

COMPARISON_OPERATORS = frozenset({"=", "<>", "<", "<=", ">", ">="})


@dataclass(frozen=True)
class Condition:
    """One parameterized predicate fragment."""

    text: str
    params: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        placeholders = self.text.count("?")
        if placeholders != len(self.params):
            raise ValueError(
                f"Condition has {placeholders} placeholders but {len(self.params)} params: "
                f"{self.text}"
            )


TRUE = Condition("TRUE")
FALSE = Condition("FALSE")


# --- column references ---


def col(alias: str, column: str) -> str:
    """Qualified column reference (alias.column).

    both halves are checked - the alias against the identifier rules, the
    column against the known schema. this is the only way identifiers get
    into condition text.
    """
    if not is_valid_identifier(alias):
        raise ValueError(f"Invalid table alias: {alias}")
    if column not in ALL_COLUMNS:
        raise ValueError(f"Invalid column name: {column}")
    return f"{alias}.{column}"


# --- value helpers ---


def has_values(values: Sequence[Any] | None) -> bool:
    """True for a non-empty list; None and [] both mean 'no filter'."""
    return values is not None and len(values) > 0


def is_finite_number(value: Any) -> bool:
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def to_numeric_ids(ids: Iterable[str]) -> list[int]:
    """Convert string ids to ints, dropping blanks and anything non-numeric."""
    result = []
    for raw in ids:
        stripped = raw.strip()
        if re.fullmatch(r"[+-]?\d+", stripped):
            result.append(int(stripped))
    return result


def escape_like_wildcards(value: str) -> str:
    """Escape LIKE metacharacters so they match literally.

    backslash has to go first, otherwise the escapes added for % and _ would
    get doubled.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# --- single predicates ---


def eq(column_ref: str, value: Any) -> Condition:
    return Condition(f"{column_ref} = ?", (value,))


def compare(column_ref: str, operator: str, value: Any) -> Condition:
    if operator not in COMPARISON_OPERATORS:
        raise ValueError(f"Unsupported comparison operator: {operator}")
    return Condition(f"{column_ref} {operator} ?", (value,))


def in_list(column_ref: str, values: Sequence[Any]) -> Condition:
    """column IN (?, ?, ...). callers check has_values first - IN () is invalid sql."""
    if not values:
        raise ValueError(f"Empty IN list for {column_ref}")
    placeholders = ", ".join("?" for _ in values)
    return Condition(f"{column_ref} IN ({placeholders})", tuple(values))


def not_in_list(column_ref: str, values: Sequence[Any], nullable: bool = False) -> Condition:
    """column NOT IN (...), optionally keeping NULL rows.

    NOT IN evaluates to NULL (not true) for a NULL column value, so a plain
    NOT IN silently drops those rows. nullable columns get an explicit
    IS NULL branch.
    """
    if not values:
        raise ValueError(f"Empty NOT IN list for {column_ref}")
    placeholders = ", ".join("?" for _ in values)
    if nullable:
        text = f"({column_ref} IS NULL OR {column_ref} NOT IN ({placeholders}))"
    else:
        text = f"{column_ref} NOT IN ({placeholders})"
    return Condition(text, tuple(values))


def like_prefix(column_ref: str, prefix: str, negate: bool = False) -> Condition:
    """column [NOT] LIKE 'prefix%' with the prefix's own wildcards escaped."""
    operator = "NOT LIKE" if negate else "LIKE"
    pattern = escape_like_wildcards(prefix) + "%"
    return Condition(f"{column_ref} {operator} ? {LIKE_ESCAPE}", (pattern,))


def ilike_contains(column_ref: str, term: str) -> Condition:
    """Case-insensitive substring match."""
    pattern = "%" + escape_like_wildcards(term) + "%"
    return Condition(f"{column_ref} ILIKE ? {LIKE_ESCAPE}", (pattern,))


# --- combinators ---


def _join(conditions: Sequence[Condition], separator: str) -> Condition:
    text = separator.join(c.text for c in conditions)
    params: tuple[Any, ...] = ()
    for c in conditions:
        params += c.params
    return Condition(text, params)


def and_conditions(conditions: Sequence[Condition]) -> Condition:
    """AND without wrapping parens - for top-level WHERE lists."""
    if not conditions:
        return TRUE
    if len(conditions) == 1:
        return conditions[0]
    return _join(conditions, " AND ")


def all_of(conditions: Sequence[Condition]) -> Condition:
    """AND group, parenthesized so it can sit inside a larger expression."""
    if not conditions:
        return TRUE
    if len(conditions) == 1:
        return conditions[0]
    joined = _join(conditions, " AND ")
    return Condition(f"({joined.text})", joined.params)


def any_of(conditions: Sequence[Condition]) -> Condition:
    """OR group, parenthesized. an empty OR matches nothing."""
    if not conditions:
        return FALSE
    if len(conditions) == 1:
        return conditions[0]
    joined = _join(conditions, " OR ")
    return Condition(f"({joined.text})", joined.params)


def to_where_clause(conditions: Sequence[Condition]) -> Condition | None:
    """WHERE clause for a condition list, None when there's nothing to filter."""
    if not conditions:
        return None
    combined = and_conditions(conditions)
    return Condition(f"WHERE {combined.text}", combined.params)


# --- placeholder rendering ---


def render_placeholders(text: str, style: str = "qmark") -> str:
    """Rewrite `?` placeholders for a driver's paramstyle.

    qmark keeps them (duckdb, sqlite); numeric turns them into $1, $2, ...
    (postgres). condition text never contains a literal question mark - all
    string values are bound - so a plain scan is enough.
    """
    if style == "qmark":
        return text
    if style != "numeric":
        raise ValueError(f"Unsupported placeholder style: {style}")

    parts = text.split("?")
    rendered = [parts[0]]
    for index, part in enumerate(parts[1:], start=1):
        rendered.append(f"${index}")
        rendered.append(part)
    return "".join(rendered)
