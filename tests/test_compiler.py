"""Tests for the filter compiler."""

from decimal import Decimal

import pytest

from budgetlens.compiler.filter_compiler import (
    FilterCompiler,
    FilterContext,
    JoinsRequired,
    compile_filter,
    create_filter_context,
    needs_entity_join,
    needs_uat_join,
)
from budgetlens.models import (
    AccountCategory,
    AnalyticsFilter,
    ExclusionFilter,
    Frequency,
    PeriodSelection,
    ReportPeriod,
)

ESC = "ESCAPE '\\'"


def texts(conditions) -> list[str]:
    return [c.text for c in conditions]


def dates_filter(frequency: Frequency, dates: list[str]) -> AnalyticsFilter:
    return AnalyticsFilter(
        account_category=AccountCategory.EXPENSE,
        report_period=ReportPeriod(type=frequency, selection=PeriodSelection(dates=dates)),
    )


class TestCompileBasics:
    def test_minimal_filter(self, yearly_filter):
        """Only the period and account category are emitted for a bare filter."""
        conditions, joins = compile_filter(yearly_filter)

        assert texts(conditions) == [
            "eli.is_yearly = TRUE",
            "eli.year >= ?",
            "eli.year <= ?",
            "eli.account_category = ?",
        ]
        assert [c.params for c in conditions] == [(), (2022,), (2023,), ("ch",)]
        assert joins == JoinsRequired(entity=False, territorial_unit=False)

    def test_result_is_named_tuple(self, yearly_filter):
        """Compiled filter exposes named fields as well as unpacking."""
        compiled = compile_filter(yearly_filter)
        assert compiled.conditions == compiled[0]
        assert compiled.joins_required.entity is False

    def test_empty_lists_emit_nothing(self, make_filter, yearly_filter):
        """Empty lists behave exactly like absent ones."""
        empty = make_filter(
            report_ids=[],
            entity_cuis=[],
            functional_codes=[],
            functional_prefixes=[],
            economic_codes=[],
            economic_prefixes=[],
            program_codes=[],
            funding_source_ids=[],
            budget_sector_ids=[],
            expense_types=[],
            entity_types=[],
            uat_ids=[],
            county_codes=[],
            regions=[],
            exclude=ExclusionFilter(
                report_ids=[], functional_prefixes=[], county_codes=[], entity_types=[]
            ),
        )
        conditions, joins = compile_filter(empty)

        assert texts(conditions) == texts(compile_filter(yearly_filter).conditions)
        assert not any("IN ()" in t for t in texts(conditions))
        assert joins == JoinsRequired(False, False)

    def test_values_are_bound_not_inlined(self, make_filter):
        """User values only show up in params."""
        f = make_filter(entity_cuis=["'; DROP TABLE entities; --"], report_type="x' OR '1'='1")
        conditions, _ = compile_filter(f)

        assert not any("DROP" in t or "'1'" in t for t in texts(conditions))
        params = [p for c in conditions for p in c.params]
        assert "'; DROP TABLE entities; --" in params

    def test_account_category_override(self, yearly_filter):
        """An explicit account category wins over the filter's."""
        conditions, _ = compile_filter(yearly_filter, account_category=AccountCategory.INCOME)
        assert ("vn",) in [c.params for c in conditions]

    def test_exclude_override(self, make_filter):
        """An explicit exclude block replaces the filter's own."""
        f = make_filter(exclude=ExclusionFilter(report_ids=["r1"]))
        conditions, _ = compile_filter(f, exclude=ExclusionFilter(entity_cuis=["100"]))

        assert "eli.entity_cui NOT IN (?)" in texts(conditions)
        assert "eli.report_id NOT IN (?)" not in texts(conditions)

    def test_compiler_class_matches_function(self, make_filter):
        """FilterCompiler.compile and compile_filter agree."""
        f = make_filter(county_codes=["CJ"], functional_prefixes=["65"])
        assert FilterCompiler().compile(f) == compile_filter(f)


class TestPeriodConditions:
    def test_month_interval_uses_tuple_bounds(self, make_filter):
        """Monthly intervals compare (year, month) pairs."""
        f = make_filter(Frequency.MONTH, "2023-03", "2024-02")
        conditions, _ = compile_filter(f)

        assert conditions[0].text == "(eli.year > ? OR (eli.year = ? AND eli.month >= ?))"
        assert conditions[0].params == (2023, 2023, 3)
        assert conditions[1].text == "(eli.year < ? OR (eli.year = ? AND eli.month <= ?))"
        assert conditions[1].params == (2024, 2024, 2)

    def test_quarter_interval(self, make_filter):
        """Quarterly intervals add the quarterly flag and compare (year, quarter)."""
        f = make_filter(Frequency.QUARTER, "2023-Q2", "2023-Q4")
        conditions, _ = compile_filter(f)

        assert conditions[0].text == "eli.is_quarterly = TRUE"
        assert "eli.quarter >= ?" in conditions[1].text
        assert conditions[1].params == (2023, 2023, 2)

    def test_month_interval_with_year_labels(self, make_filter):
        """Labels coarser than the frequency fall back to year bounds."""
        f = make_filter(Frequency.MONTH, "2022", "2023")
        conditions, _ = compile_filter(f)
        assert texts(conditions)[:2] == ["eli.year >= ?", "eli.year <= ?"]

    def test_discrete_years(self):
        """Yearly date lists become a year IN."""
        conditions, _ = compile_filter(dates_filter(Frequency.YEAR, ["2021", "2023"]))
        assert conditions[1].text == "eli.year IN (?, ?)"
        assert conditions[1].params == (2021, 2023)

    def test_discrete_months(self):
        """Monthly date lists become an OR of (year, month) pairs."""
        f = dates_filter(Frequency.MONTH, ["2023-01", "not-a-date", "2023-06"])
        conditions, _ = compile_filter(f)
        assert conditions[0].text == (
            "((eli.year = ? AND eli.month = ?) OR (eli.year = ? AND eli.month = ?))"
        )
        assert conditions[0].params == (2023, 1, 2023, 6)

    def test_all_invalid_dates_contribute_nothing(self):
        """A date list with nothing parseable adds no condition."""
        conditions, _ = compile_filter(dates_filter(Frequency.MONTH, ["junk", "2023"]))
        assert texts(conditions) == ["eli.account_category = ?"]


class TestCodeConditions:
    def test_single_prefix_is_one_like(self, make_filter):
        """One prefix gives exactly one bare LIKE."""
        conditions, _ = compile_filter(make_filter(functional_prefixes=["65"]))

        likes = [c for c in conditions if "LIKE" in c.text]
        assert len(likes) == 1
        assert likes[0].text == f"eli.functional_code LIKE ? {ESC}"
        assert likes[0].params == ("65%",)

    def test_multiple_prefixes_are_or_combined(self, make_filter):
        """Several prefixes match any of them."""
        conditions, _ = compile_filter(make_filter(functional_prefixes=["65", "66"]))

        likes = [c for c in conditions if "LIKE" in c.text]
        assert len(likes) == 1
        assert likes[0].text == (
            f"(eli.functional_code LIKE ? {ESC} OR eli.functional_code LIKE ? {ESC})"
        )
        assert likes[0].params == ("65%", "66%")

    def test_prefix_wildcards_escaped(self, make_filter):
        """A user supplied underscore can't act as a wildcard."""
        conditions, _ = compile_filter(make_filter(economic_prefixes=["10_"]))
        like = next(c for c in conditions if "LIKE" in c.text)
        assert like.params == ("10\\_%",)

    def test_exact_codes_and_programs(self, make_filter):
        """Exact code lists become IN, program prefixes work like the others."""
        f = make_filter(economic_codes=["10.01", "20.01"], program_prefixes=["P1"])
        conditions, _ = compile_filter(f)

        assert "eli.economic_code IN (?, ?)" in texts(conditions)
        assert f"eli.program_code LIKE ? {ESC}" in texts(conditions)


class TestDimensionConditions:
    def test_numeric_ids_converted(self, make_filter):
        """Funding source ids are converted to ints and junk is dropped."""
        conditions, _ = compile_filter(make_filter(funding_source_ids=["1", "x", "3"]))
        cond = next(c for c in conditions if "funding_source_id" in c.text)
        assert cond.params == (1, 3)

    def test_all_junk_ids_emit_nothing(self, make_filter):
        """If no id survives conversion there's no predicate."""
        conditions, _ = compile_filter(make_filter(budget_sector_ids=["abc"]))
        assert not any("budget_sector_id" in t for t in texts(conditions))

    def test_scalar_dimensions(self, make_filter):
        """Report type and main creditor are equality checks."""
        f = make_filter(report_type="Executie bugetara detaliata", main_creditor_cui="123")
        conditions, _ = compile_filter(f)
        assert "eli.report_type = ?" in texts(conditions)
        assert "eli.main_creditor_cui = ?" in texts(conditions)


class TestEntityAndUatConditions:
    def test_entity_conditions(self, make_filter):
        """Entity fields need the entity join only."""
        f = make_filter(entity_types=["uat"], is_uat=True, uat_ids=["1", "2"], search="  cluj ")
        conditions, joins = compile_filter(f)

        assert joins == JoinsRequired(entity=True, territorial_unit=False)
        assert "e.entity_type IN (?)" in texts(conditions)
        assert "e.is_uat = ?" in texts(conditions)
        assert "e.uat_id IN (?, ?)" in texts(conditions)
        search = next(c for c in conditions if "ILIKE" in c.text)
        assert search.params == ("%cluj%",)

    def test_blank_search_ignored(self, make_filter):
        """Whitespace-only search neither filters nor joins."""
        conditions, joins = compile_filter(make_filter(search="   "))
        assert not any("ILIKE" in t for t in texts(conditions))
        assert joins.entity is False

    def test_uat_conditions(self, make_filter):
        """County, region and population need the uat join, which implies the entity join."""
        f = make_filter(county_codes=["CJ"], regions=["Vest"], min_population=1000, max_population=50000)
        conditions, joins = compile_filter(f)

        assert joins == JoinsRequired(entity=True, territorial_unit=True)
        assert "u.county_code IN (?)" in texts(conditions)
        assert "u.region IN (?)" in texts(conditions)
        assert "u.population >= ?" in texts(conditions)
        assert "u.population <= ?" in texts(conditions)

    def test_region_alone_still_requires_entity_join(self, make_filter):
        """Uats are only reachable through entities."""
        _, joins = compile_filter(make_filter(regions=["Vest"]))
        assert joins == JoinsRequired(entity=True, territorial_unit=True)

    def test_predicates_dropped_without_join(self, make_filter):
        """No e.* or u.* reference unless the context has the join."""
        f = make_filter(
            entity_types=["uat"],
            county_codes=["CJ"],
            exclude=ExclusionFilter(entity_types=["ministry"], regions=["Vest"]),
        )
        conditions, joins = compile_filter(f, context=FilterContext())

        assert not any(t.startswith(("e.", "u.", "(e.", "(u.")) for t in texts(conditions))
        # join flags still report what the filter references
        assert joins == JoinsRequired(entity=True, territorial_unit=True)

    def test_custom_aliases(self, make_filter):
        """Aliases from the context are used in the emitted text."""
        ctx = create_filter_context(has_entity_join=True, entity_alias="ent", line_item_alias="li")
        conditions, _ = compile_filter(make_filter(entity_types=["uat"]), context=ctx)

        assert "ent.entity_type IN (?)" in texts(conditions)
        assert "li.account_category = ?" in texts(conditions)

    def test_invalid_alias_rejected(self):
        """Context aliases have to be plain identifiers."""
        with pytest.raises(ValueError, match="Invalid table alias"):
            FilterContext(entity_alias="e; DROP")

    def test_alias_with_trailing_newline_rejected(self):
        """A newline after an otherwise valid alias is rejected."""
        with pytest.raises(ValueError, match="Invalid table alias"):
            FilterContext(line_item_alias="eli\n")


class TestAmountConditions:
    @pytest.mark.parametrize(
        "frequency,start,end,column",
        [
            (Frequency.MONTH, "2023-01", "2023-12", "monthly_amount"),
            (Frequency.QUARTER, "2023-Q1", "2023-Q4", "quarterly_amount"),
            (Frequency.YEAR, "2023", "2023", "ytd_amount"),
        ],
    )
    def test_amount_column_by_frequency(self, make_filter, frequency, start, end, column):
        """The amount column follows the report frequency."""
        f = make_filter(frequency, start, end, item_min_amount=10, item_max_amount="500.5")
        conditions, _ = compile_filter(f)

        assert f"eli.{column} >= ?" in texts(conditions)
        assert f"eli.{column} <= ?" in texts(conditions)

    def test_bounds_bind_as_decimal(self, make_filter):
        """Amount bounds keep their exact digits."""
        f = make_filter(item_min_amount="0.1", item_max_amount="500.5")
        conditions, _ = compile_filter(f)
        params = [p for c in conditions if "ytd_amount" in c.text for p in c.params]
        assert params == [Decimal("0.1"), Decimal("500.5")]
        assert all(isinstance(p, Decimal) for p in params)

    def test_non_finite_bounds_ignored(self, make_filter):
        """NaN and infinite bounds don't produce predicates."""
        f = make_filter().model_copy(
            update={"item_min_amount": Decimal("NaN"), "item_max_amount": Decimal("Infinity")}
        )
        conditions, _ = compile_filter(f)
        assert not any("ytd_amount" in t for t in texts(conditions))

    def test_aggregate_bounds_not_in_where(self, make_filter):
        """Aggregate bounds are applied after normalization, not in WHERE."""
        conditions, _ = compile_filter(make_filter(aggregate_min_amount=100))
        assert not any("amount" in t for t in texts(conditions))


class TestExclusionConditions:
    def test_prefix_exclusions_are_and_combined(self, make_filter):
        """Excluded prefixes must all fail to match."""
        f = make_filter(exclude=ExclusionFilter(functional_prefixes=["65", "66"]))
        conditions, _ = compile_filter(f)

        assert conditions[-1].text == (
            f"(eli.functional_code NOT LIKE ? {ESC} AND eli.functional_code NOT LIKE ? {ESC})"
        )
        assert conditions[-1].params == ("65%", "66%")

    def test_county_exclusion_is_null_safe(self, make_filter):
        """County exclusion keeps rows with no county."""
        f = make_filter(exclude=ExclusionFilter(county_codes=["CJ", "TM"]))
        conditions, joins = compile_filter(f)

        assert joins == JoinsRequired(entity=True, territorial_unit=True)
        assert conditions[-1].text == "(u.county_code IS NULL OR u.county_code NOT IN (?, ?))"
        assert conditions[-1].params == ("CJ", "TM")

    def test_entity_exclusions_null_safe(self, make_filter):
        """Entity type and uat id exclusions keep NULL rows."""
        f = make_filter(exclude=ExclusionFilter(entity_types=["ministry"], uat_ids=["3"]))
        conditions, _ = compile_filter(f)

        assert "(e.entity_type IS NULL OR e.entity_type NOT IN (?))" in texts(conditions)
        assert "(e.uat_id IS NULL OR e.uat_id NOT IN (?))" in texts(conditions)

    def test_economic_exclusions_skipped_for_income(self, make_filter):
        """Income items aren't filtered on economic codes."""
        exclude = ExclusionFilter(economic_codes=["10.01"], economic_prefixes=["20"])
        income = make_filter(account_category=AccountCategory.INCOME, exclude=exclude)
        expense = make_filter(exclude=exclude)

        assert not any("economic_code" in t for t in texts(compile_filter(income).conditions))
        expense_texts = texts(compile_filter(expense).conditions)
        assert "eli.economic_code NOT IN (?)" in expense_texts
        assert f"eli.economic_code NOT LIKE ? {ESC}" in expense_texts

    def test_line_item_exclusions(self, make_filter):
        """Line item exclusions are plain NOT IN."""
        f = make_filter(
            exclude=ExclusionFilter(report_ids=["r1"], entity_cuis=["100"], functional_codes=["65.02"])
        )
        conditions, joins = compile_filter(f)

        assert texts(conditions)[-3:] == [
            "eli.report_id NOT IN (?)",
            "eli.entity_cui NOT IN (?)",
            "eli.functional_code NOT IN (?)",
        ]
        assert joins == JoinsRequired(False, False)


class TestConditionOrder:
    def test_groups_in_fixed_order(self, make_filter):
        """Period, dimension, code, entity, uat, amount, exclusion."""
        f = make_filter(
            report_ids=["r1"],
            functional_codes=["65.02"],
            entity_types=["uat"],
            county_codes=["CJ"],
            item_min_amount=1,
            exclude=ExclusionFilter(report_ids=["r2"]),
        )
        order = texts(compile_filter(f).conditions)

        markers = [
            "eli.is_yearly = TRUE",
            "eli.account_category = ?",
            "eli.report_id IN (?)",
            "eli.functional_code IN (?)",
            "e.entity_type IN (?)",
            "u.county_code IN (?)",
            "eli.ytd_amount >= ?",
            "eli.report_id NOT IN (?)",
        ]
        positions = [order.index(m) for m in markers]
        assert positions == sorted(positions)

    def test_compilation_is_deterministic(self, make_filter):
        """Same filter, same output."""
        f = make_filter(functional_prefixes=["65", "66"], county_codes=["CJ", "TM"])
        assert compile_filter(f) == compile_filter(f)


class TestJoinDetection:
    @pytest.mark.parametrize(
        "fields,entity,uat",
        [
            ({}, False, False),
            ({"entity_types": ["uat"]}, True, False),
            ({"is_uat": False}, True, False),
            ({"uat_ids": ["1"]}, True, False),
            ({"search": "cluj"}, True, False),
            ({"county_codes": ["CJ"]}, True, True),
            ({"regions": ["Vest"]}, False, True),
            ({"min_population": 100}, True, True),
            ({"exclude": ExclusionFilter(entity_types=["x"])}, True, False),
            ({"exclude": ExclusionFilter(regions=["Vest"])}, False, True),
        ],
    )
    def test_needs_join(self, make_filter, fields, entity, uat):
        """Join detection looks at both inclusion and exclusion fields."""
        f = make_filter(**fields)
        assert needs_entity_join(f) is entity
        assert needs_uat_join(f) is uat
