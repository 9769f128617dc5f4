"""Filter compiler - AnalyticsFilter to parameterized predicates.

the flow:
  1. figure out which joins the filter needs (entity, uat)
  2. build the condition groups in a fixed order: period, dimensions, codes,
     entity, uat, amounts, exclusions
  3. hand back the conditions plus the join flags so the caller can decide
     whether to add the LEFT JOINs

entity and uat predicates are only emitted when the context says the join is
there. referencing e.* without joining entities would be a sql error, and
quietly dropping those filters is what the join flags exist to prevent.
"""

from dataclasses import dataclass
from typing import NamedTuple

import structlog

from budgetlens.compiler.conditions import (
    Condition,
    any_of,
    all_of,
    col,
    compare,
    eq,
    has_values,
    ilike_contains,
    in_list,
    is_finite_number,
    like_prefix,
    not_in_list,
    to_numeric_ids,
)
from budgetlens.compiler.identifiers import (
    ENTITY_ALIAS,
    LINE_ITEM_ALIAS,
    UAT_ALIAS,
    get_amount_column,
    is_valid_identifier,
)
from budgetlens.compiler.periods import build_period_conditions
from budgetlens.models.filter import AccountCategory, AnalyticsFilter, ExclusionFilter

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FilterContext:
    """Table aliases plus which optional joins the query actually has."""

    line_item_alias: str = LINE_ITEM_ALIAS
    entity_alias: str = ENTITY_ALIAS
    uat_alias: str = UAT_ALIAS
    has_entity_join: bool = False
    has_uat_join: bool = False

    def __post_init__(self) -> None:
        for alias in (self.line_item_alias, self.entity_alias, self.uat_alias):
            if not is_valid_identifier(alias):
                raise ValueError(f"Invalid table alias: {alias}")


def create_filter_context(
    has_entity_join: bool = False,
    has_uat_join: bool = False,
    **aliases: str,
) -> FilterContext:
    return FilterContext(has_entity_join=has_entity_join, has_uat_join=has_uat_join, **aliases)


class JoinsRequired(NamedTuple):
    entity: bool
    territorial_unit: bool


class CompiledFilter(NamedTuple):
    """What compile_filter returns - unpacks as (conditions, joins_required)."""

    conditions: list[Condition]
    joins_required: JoinsRequired


# --- join detection ---


def needs_entity_join(filter: AnalyticsFilter) -> bool:
    """Does the filter reference anything on the entities table (or past it)?"""
    exclude = filter.exclude
    return bool(
        has_values(filter.entity_types)
        or filter.is_uat is not None
        or has_values(filter.uat_ids)
        or has_values(filter.county_codes)
        or (filter.search is not None and filter.search.strip())
        or filter.min_population is not None
        or filter.max_population is not None
        or (
            exclude is not None
            and (
                has_values(exclude.entity_types)
                or has_values(exclude.uat_ids)
                or has_values(exclude.county_codes)
            )
        )
    )


def needs_uat_join(filter: AnalyticsFilter) -> bool:
    exclude = filter.exclude
    return bool(
        has_values(filter.county_codes)
        or has_values(filter.regions)
        or filter.min_population is not None
        or filter.max_population is not None
        or (exclude is not None and (has_values(exclude.county_codes) or has_values(exclude.regions)))
    )


# --- condition groups ---


def _prefix_match(column_ref: str, prefixes: list[str]) -> Condition:
    """Match any of the prefixes - a single prefix stays a bare LIKE."""
    return any_of([like_prefix(column_ref, prefix) for prefix in prefixes])


def _prefix_exclusion(column_ref: str, prefixes: list[str]) -> Condition:
    """Match none of the prefixes."""
    return all_of([like_prefix(column_ref, prefix, negate=True) for prefix in prefixes])


def build_dimension_conditions(
    filter: AnalyticsFilter,
    account_category: AccountCategory,
    ctx: FilterContext,
) -> list[Condition]:
    """Line item dimensions. account category is always there."""
    a = ctx.line_item_alias
    conditions = [eq(col(a, "account_category"), account_category.value)]

    if filter.report_type:
        conditions.append(eq(col(a, "report_type"), filter.report_type))
    if filter.main_creditor_cui:
        conditions.append(eq(col(a, "main_creditor_cui"), filter.main_creditor_cui))
    if has_values(filter.report_ids):
        conditions.append(in_list(col(a, "report_id"), filter.report_ids))
    if has_values(filter.entity_cuis):
        conditions.append(in_list(col(a, "entity_cui"), filter.entity_cuis))

    # numeric id columns - junk ids are dropped, and if nothing survives there's no filter
    if has_values(filter.funding_source_ids):
        ids = to_numeric_ids(filter.funding_source_ids)
        if ids:
            conditions.append(in_list(col(a, "funding_source_id"), ids))
    if has_values(filter.budget_sector_ids):
        ids = to_numeric_ids(filter.budget_sector_ids)
        if ids:
            conditions.append(in_list(col(a, "budget_sector_id"), ids))

    if has_values(filter.expense_types):
        conditions.append(in_list(col(a, "expense_type"), filter.expense_types))

    return conditions


def build_code_conditions(filter: AnalyticsFilter, ctx: FilterContext) -> list[Condition]:
    """Classification codes - exact lists and prefix lists per dimension."""
    a = ctx.line_item_alias
    conditions = []

    dimensions = [
        ("functional_code", filter.functional_codes, filter.functional_prefixes),
        ("economic_code", filter.economic_codes, filter.economic_prefixes),
        ("program_code", filter.program_codes, filter.program_prefixes),
    ]
    for column, codes, prefixes in dimensions:
        column_ref = col(a, column)
        if has_values(codes):
            conditions.append(in_list(column_ref, codes))
        if has_values(prefixes):
            conditions.append(_prefix_match(column_ref, prefixes))

    return conditions


def build_entity_conditions(filter: AnalyticsFilter, ctx: FilterContext) -> list[Condition]:
    if not ctx.has_entity_join:
        return []

    e = ctx.entity_alias
    conditions = []

    if has_values(filter.entity_types):
        conditions.append(in_list(col(e, "entity_type"), filter.entity_types))
    if filter.is_uat is not None:
        conditions.append(eq(col(e, "is_uat"), filter.is_uat))
    if has_values(filter.uat_ids):
        ids = to_numeric_ids(filter.uat_ids)
        if ids:
            conditions.append(in_list(col(e, "uat_id"), ids))
    if filter.search is not None:
        term = filter.search.strip()
        if term:
            conditions.append(ilike_contains(col(e, "name"), term))

    return conditions


def build_uat_conditions(filter: AnalyticsFilter, ctx: FilterContext) -> list[Condition]:
    if not ctx.has_uat_join:
        return []

    u = ctx.uat_alias
    conditions = []

    if has_values(filter.county_codes):
        conditions.append(in_list(col(u, "county_code"), filter.county_codes))
    if has_values(filter.regions):
        conditions.append(in_list(col(u, "region"), filter.regions))
    if is_finite_number(filter.min_population):
        conditions.append(compare(col(u, "population"), ">=", filter.min_population))
    if is_finite_number(filter.max_population):
        conditions.append(compare(col(u, "population"), "<=", filter.max_population))

    return conditions


def build_amount_conditions(filter: AnalyticsFilter, ctx: FilterContext) -> list[Condition]:
    """Per-row amount bounds on the frequency's amount column.

    aggregate bounds are not here - they apply to the normalized per-period
    amounts, after the query (see AnalyticsStore.series).
    """
    column_ref = col(ctx.line_item_alias, get_amount_column(filter.frequency))
    conditions = []
    if is_finite_number(filter.item_min_amount):
        conditions.append(compare(column_ref, ">=", filter.item_min_amount))
    if is_finite_number(filter.item_max_amount):
        conditions.append(compare(column_ref, "<=", filter.item_max_amount))
    return conditions


def build_exclusion_conditions(
    exclude: ExclusionFilter | None,
    account_category: AccountCategory,
    ctx: FilterContext,
) -> list[Condition]:
    """Negated dimensions.

    line item columns are NOT NULL so a plain NOT IN is fine there. entity and
    uat columns come through LEFT JOINs and can be NULL, those get the
    IS NULL OR NOT IN form.
    """
    if exclude is None:
        return []

    a = ctx.line_item_alias
    conditions = []

    if has_values(exclude.report_ids):
        conditions.append(not_in_list(col(a, "report_id"), exclude.report_ids))
    if has_values(exclude.entity_cuis):
        conditions.append(not_in_list(col(a, "entity_cui"), exclude.entity_cuis))

    if has_values(exclude.functional_codes):
        conditions.append(not_in_list(col(a, "functional_code"), exclude.functional_codes))
    if has_values(exclude.functional_prefixes):
        conditions.append(_prefix_exclusion(col(a, "functional_code"), exclude.functional_prefixes))

    # income items don't carry an economic classification
    if account_category != AccountCategory.INCOME:
        if has_values(exclude.economic_codes):
            conditions.append(not_in_list(col(a, "economic_code"), exclude.economic_codes))
        if has_values(exclude.economic_prefixes):
            conditions.append(_prefix_exclusion(col(a, "economic_code"), exclude.economic_prefixes))

    if ctx.has_entity_join:
        e = ctx.entity_alias
        if has_values(exclude.entity_types):
            conditions.append(
                not_in_list(col(e, "entity_type"), exclude.entity_types, nullable=True)
            )
        if has_values(exclude.uat_ids):
            ids = to_numeric_ids(exclude.uat_ids)
            if ids:
                conditions.append(not_in_list(col(e, "uat_id"), ids, nullable=True))

    if ctx.has_uat_join:
        u = ctx.uat_alias
        if has_values(exclude.county_codes):
            conditions.append(
                not_in_list(col(u, "county_code"), exclude.county_codes, nullable=True)
            )
        if has_values(exclude.regions):
            conditions.append(not_in_list(col(u, "region"), exclude.regions, nullable=True))

    return conditions


# --- entry point ---


class FilterCompiler:
    """Compiles analytics filters into condition lists.

    stateless - holds nothing but the optional context override. one instance
    can be shared across requests.
    """

    def __init__(self, context: FilterContext | None = None) -> None:
        self.context = context

    def compile(
        self,
        filter: AnalyticsFilter,
        exclude: ExclusionFilter | None = None,
        account_category: AccountCategory | None = None,
    ) -> CompiledFilter:
        exclude = exclude if exclude is not None else filter.exclude
        account_category = account_category or filter.account_category

        territorial_unit = needs_uat_join(filter)
        joins = JoinsRequired(
            # uats are reached through entities, so one implies the other
            entity=needs_entity_join(filter) or territorial_unit,
            territorial_unit=territorial_unit,
        )
        ctx = self.context or FilterContext(
            has_entity_join=joins.entity, has_uat_join=joins.territorial_unit
        )

        conditions = [
            *build_period_conditions(
                filter.report_period.selection, filter.frequency, ctx.line_item_alias
            ),
            *build_dimension_conditions(filter, account_category, ctx),
            *build_code_conditions(filter, ctx),
            *build_entity_conditions(filter, ctx),
            *build_uat_conditions(filter, ctx),
            *build_amount_conditions(filter, ctx),
            *build_exclusion_conditions(exclude, account_category, ctx),
        ]

        log.debug(
            "filter_compiled",
            conditions=len(conditions),
            params=sum(len(c.params) for c in conditions),
            entity_join=joins.entity,
            uat_join=joins.territorial_unit,
        )
        return CompiledFilter(conditions=conditions, joins_required=joins)


def compile_filter(
    filter: AnalyticsFilter,
    exclude: ExclusionFilter | None = None,
    account_category: AccountCategory | None = None,
    context: FilterContext | None = None,
) -> CompiledFilter:
    """Compile a filter into (conditions, joins_required)."""
    return FilterCompiler(context).compile(filter, exclude, account_category)
