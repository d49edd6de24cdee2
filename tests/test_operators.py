"""
Tests for magicshelf.operators.

Operators are exercised through RuleEvaluator.evaluate_rule so that both
sides go through the same normalization as in production.
"""

import math
from datetime import datetime, timezone

import pytest

from conftest import make_book
from magicshelf.models import Book, ReadingProgress, Rule
from magicshelf.operators import id_string, map_file_type, normalize, to_number
from magicshelf.rules import RuleEvaluator


@pytest.fixture
def evaluator(clock):
    return RuleEvaluator(clock=clock)


def matches(evaluator, book, field, operator, value=None, start=None, end=None):
    rule = Rule(field=field, operator=operator, value=value, value_start=start, value_end=end)
    return evaluator.evaluate_rule(book, rule)


class TestHelpers:
    """Test normalization and coercion helpers."""

    def test_normalize_lowercases_text(self):
        assert normalize("Frank Herbert") == "frank herbert"

    def test_normalize_parses_iso_text(self):
        assert normalize("2024-06-15") == datetime(2024, 6, 15, tzinfo=timezone.utc)

    def test_normalize_leaves_numbers_and_lists(self):
        assert normalize(5) == 5
        assert normalize(["A"]) == ["A"]
        assert normalize(None) is None

    def test_to_number(self):
        assert to_number("12.5") == 12.5
        assert to_number("") == 0
        assert to_number(True) == 1
        assert math.isnan(to_number(None))
        assert math.isnan(to_number("abc"))
        assert math.isnan(to_number(["1"]))

    def test_map_file_type(self):
        assert map_file_type("CBZ") == "cbx"
        assert map_file_type("azw") == "azw3"
        assert map_file_type("epub") == "epub"

    def test_id_string(self):
        assert id_string(5.0) == "5"
        assert id_string(5.5) == "5.5"
        assert id_string(7) == "7"


class TestEquality:
    """Test equals and not_equals."""

    def test_text_equality_is_case_insensitive(self, evaluator):
        book = make_book(title="Dune")
        assert matches(evaluator, book, "title", "equals", "DUNE")
        assert not matches(evaluator, book, "title", "not_equals", "dune")

    def test_file_type_synonyms_apply_to_rule_value(self, evaluator):
        book = make_book(book_type="CBX")
        assert matches(evaluator, book, "fileType", "equals", "cbz")
        assert matches(evaluator, book, "fileType", "equals", "CBR")
        assert not matches(evaluator, book, "fileType", "not_equals", "cb7")

    def test_number_equality(self, evaluator):
        book = make_book(page_count=412)
        assert matches(evaluator, book, "pageCount", "equals", 412)
        assert matches(evaluator, book, "pageCount", "equals", 412.0)
        assert matches(evaluator, book, "pageCount", "not_equals", 100)

    def test_text_never_equals_number(self, evaluator):
        book = make_book(page_count=412)
        assert not matches(evaluator, book, "pageCount", "equals", "412")

    def test_boolean_equality_is_strict(self, evaluator):
        book = make_book(abridged=True)
        assert matches(evaluator, book, "abridged", "equals", True)
        assert not matches(evaluator, book, "abridged", "equals", 1)

    def test_date_equality_compares_instants(self, evaluator):
        book = make_book(added_on="2024-06-01T00:00:00Z")
        assert matches(evaluator, book, "addedOn", "equals", "2024-06-01")
        assert matches(evaluator, book, "addedOn", "not_equals", "2024-06-02")

    def test_list_equals_if_some_element_matches(self, evaluator):
        book = make_book(authors=["Frank Herbert", "Kevin J. Anderson"])
        assert matches(evaluator, book, "authors", "equals", "frank herbert")
        assert not matches(evaluator, book, "authors", "equals", "Brian Herbert")

    def test_list_not_equals_requires_every_element_to_differ(self, evaluator):
        book = make_book(authors=["Frank Herbert", "Kevin J. Anderson"])
        assert matches(evaluator, book, "authors", "not_equals", "Brian Herbert")
        assert not matches(evaluator, book, "authors", "not_equals", "Frank Herbert")

    def test_shelf_ids_compare_as_strings(self, evaluator):
        book = make_book(shelves=[3, 9])
        assert matches(evaluator, book, "shelf", "equals", 3)
        assert matches(evaluator, book, "shelf", "equals", "9")
        assert matches(evaluator, book, "shelf", "not_equals", 4)

    def test_missing_value_equals_nothing(self, evaluator):
        book = make_book()
        assert not matches(evaluator, book, "title", "equals", "dune")
        assert matches(evaluator, book, "title", "not_equals", "dune")


class TestTextOperators:
    """Test contains, does_not_contain, starts_with and ends_with."""

    def test_contains(self, evaluator):
        book = make_book(title="Children of Dune")
        assert matches(evaluator, book, "title", "contains", "DUNE")
        assert not matches(evaluator, book, "title", "contains", "messiah")

    def test_does_not_contain(self, evaluator):
        book = make_book(title="Children of Dune")
        assert matches(evaluator, book, "title", "does_not_contain", "messiah")
        assert not matches(evaluator, book, "title", "does_not_contain", "dune")

    def test_starts_and_ends_with(self, evaluator):
        book = make_book(title="Children of Dune")
        assert matches(evaluator, book, "title", "starts_with", "children")
        assert matches(evaluator, book, "title", "ends_with", "dune")
        assert not matches(evaluator, book, "title", "starts_with", "dune")

    def test_missing_text_defaults(self, evaluator):
        book = make_book()
        assert not matches(evaluator, book, "title", "contains", "dune")
        assert matches(evaluator, book, "title", "does_not_contain", "dune")

    def test_list_contains_any_element(self, evaluator):
        book = make_book(tags=["space opera", "classic"])
        assert matches(evaluator, book, "tags", "contains", "opera")
        assert not matches(evaluator, book, "tags", "does_not_contain", "opera")
        assert matches(evaluator, book, "tags", "does_not_contain", "romance")

    def test_non_text_needle_uses_safe_default(self, evaluator):
        book = make_book(title="Dune")
        assert not matches(evaluator, book, "title", "contains", 5)
        assert matches(evaluator, book, "title", "does_not_contain", 5)


class TestComparisons:
    """Test ordering operators and in_between."""

    def test_numeric_comparisons(self, evaluator):
        book = make_book(page_count=300)
        assert matches(evaluator, book, "pageCount", "greater_than", 200)
        assert matches(evaluator, book, "pageCount", "greater_than_equal_to", 300)
        assert matches(evaluator, book, "pageCount", "less_than", "400")
        assert matches(evaluator, book, "pageCount", "less_than_equal_to", 300)
        assert not matches(evaluator, book, "pageCount", "less_than", 300)

    def test_missing_value_fails_every_comparison(self, evaluator):
        book = make_book()
        for operator in ("greater_than", "greater_than_equal_to", "less_than", "less_than_equal_to"):
            assert not matches(evaluator, book, "pageCount", operator, 0)

    def test_date_comparisons(self, evaluator):
        book = make_book(published_date="1965-08-01")
        assert matches(evaluator, book, "publishedDate", "less_than", "1970-01-01")
        assert matches(evaluator, book, "publishedDate", "greater_than", "1965-01-01")

    def test_in_between_is_inclusive(self, evaluator):
        book = make_book(page_count=300)
        assert matches(evaluator, book, "pageCount", "in_between", start=300, end=400)
        assert matches(evaluator, book, "pageCount", "in_between", start=200, end=300)
        assert not matches(evaluator, book, "pageCount", "in_between", start=301, end=400)

    def test_in_between_dates(self, evaluator):
        book = make_book(added_on="2024-03-15T10:00:00Z")
        assert matches(evaluator, book, "addedOn", "in_between", start="2024-01-01", end="2024-12-31")
        assert not matches(evaluator, book, "addedOn", "in_between", start="2024-04-01", end="2024-12-31")

    def test_in_between_needs_both_bounds(self, evaluator):
        book = make_book(page_count=300)
        assert not matches(evaluator, book, "pageCount", "in_between", start=100)

    def test_reading_progress(self, evaluator):
        book = Book(id=1, progress={"epub": ReadingProgress(40), "koreader": ReadingProgress(80)})
        assert matches(evaluator, book, "readingProgress", "greater_than", 50)


class TestEmptyChecks:
    """Test is_empty and is_not_empty."""

    def test_missing_and_blank_values_are_empty(self, evaluator):
        assert matches(evaluator, make_book(), "title", "is_empty")
        assert matches(evaluator, make_book(title="   "), "title", "is_empty")
        assert matches(evaluator, make_book(), "tags", "is_empty")

    def test_present_values_are_not_empty(self, evaluator):
        assert matches(evaluator, make_book(title="Dune"), "title", "is_not_empty")
        assert matches(evaluator, make_book(tags=["x"]), "tags", "is_not_empty")
        assert matches(evaluator, make_book(page_count=0), "pageCount", "is_not_empty")


class TestMultiValueOperators:
    """Test includes_any, includes_all and excludes_all."""

    def test_includes_any(self, evaluator):
        book = make_book(categories=["Science Fiction", "Classics"])
        assert matches(evaluator, book, "categories", "includes_any", ["fantasy", "science fiction"])
        assert not matches(evaluator, book, "categories", "includes_any", ["fantasy"])

    def test_includes_all(self, evaluator):
        book = make_book(categories=["Science Fiction", "Classics"])
        assert matches(evaluator, book, "categories", "includes_all", ["CLASSICS", "science fiction"])
        assert not matches(evaluator, book, "categories", "includes_all", ["classics", "fantasy"])

    def test_excludes_all(self, evaluator):
        book = make_book(categories=["Science Fiction"])
        assert matches(evaluator, book, "categories", "excludes_all", ["romance", "horror"])
        assert not matches(evaluator, book, "categories", "excludes_all", ["romance", "science fiction"])

    def test_single_valued_field_uses_one_element_projection(self, evaluator):
        book = make_book(language="EN")
        assert matches(evaluator, book, "language", "includes_any", ["en", "de"])

    def test_library_ids(self, evaluator):
        book = make_book(library_id=2)
        assert matches(evaluator, book, "library", "includes_any", [1, 2])
        assert matches(evaluator, book, "library", "excludes_all", [3])

    def test_file_type_synonyms_in_lists(self, evaluator):
        book = make_book(book_type="CBX")
        assert matches(evaluator, book, "fileType", "includes_any", ["cbz", "pdf"])

    def test_scalar_rule_value_is_wrapped(self, evaluator):
        book = make_book(tags=["classic"])
        assert matches(evaluator, book, "tags", "includes_any", "Classic")

    def test_empty_rule_list(self, evaluator):
        book = make_book(tags=["classic"])
        assert not matches(evaluator, book, "tags", "includes_any", [])
        assert matches(evaluator, book, "tags", "includes_all", [])
        assert matches(evaluator, book, "tags", "excludes_all", [])


class TestRelativeDates:
    """Test within_last, older_than and this_period against a fixed clock (2024-06-15 12:00 UTC)."""

    def test_within_last_days(self, evaluator):
        book = make_book(added_on="2024-06-10T00:00:00Z")
        assert matches(evaluator, book, "addedOn", "within_last", 7, end="days")
        assert not matches(evaluator, book, "addedOn", "within_last", 3, end="days")

    def test_within_last_includes_cutoff(self, evaluator):
        book = make_book(added_on="2024-06-08T12:00:00Z")
        assert matches(evaluator, book, "addedOn", "within_last", 7, end="days")
        assert not matches(evaluator, book, "addedOn", "older_than", 7, end="days")

    def test_older_than_excludes_cutoff(self, evaluator):
        book = make_book(added_on="2024-06-08T11:59:59Z")
        assert matches(evaluator, book, "addedOn", "older_than", 7, end="days")
        assert not matches(evaluator, book, "addedOn", "within_last", 7, end="days")

    def test_unit_defaults_to_days(self, evaluator):
        book = make_book(added_on="2024-06-14T12:00:00Z")
        assert matches(evaluator, book, "addedOn", "within_last", 2)

    def test_months(self, evaluator):
        book = make_book(date_finished="2024-01-20")
        assert matches(evaluator, book, "dateFinished", "within_last", 6, end="months")
        assert matches(evaluator, book, "dateFinished", "older_than", 3, end="months")

    def test_amount_given_as_text(self, evaluator):
        book = make_book(added_on="2024-06-10T00:00:00Z")
        assert matches(evaluator, book, "addedOn", "within_last", "7", end="days")

    def test_non_numeric_amount_fails(self, evaluator):
        book = make_book(added_on="2024-06-10T00:00:00Z")
        assert not matches(evaluator, book, "addedOn", "within_last", "soon", end="days")
        assert not matches(evaluator, book, "addedOn", "older_than", "soon", end="days")

    def test_missing_date_fails_both(self, evaluator):
        book = make_book()
        assert not matches(evaluator, book, "addedOn", "within_last", 7, end="days")
        assert not matches(evaluator, book, "addedOn", "older_than", 7, end="days")

    def test_this_period(self, evaluator):
        book = make_book(last_read_time="2024-06-11T08:00:00Z")
        assert matches(evaluator, book, "lastReadTime", "this_period", "week")
        assert matches(evaluator, book, "lastReadTime", "this_period", "month")
        assert matches(evaluator, book, "lastReadTime", "this_period", "year")
        older = make_book(last_read_time="2024-06-09T23:59:59Z")
        assert not matches(evaluator, older, "lastReadTime", "this_period", "week")

    def test_this_period_defaults_to_year(self, evaluator):
        assert matches(evaluator, make_book(added_on="2024-01-01"), "addedOn", "this_period")
        assert not matches(evaluator, make_book(added_on="2023-12-31"), "addedOn", "this_period")


class TestUnknownOperator:

    def test_unknown_operator_fails_closed(self, evaluator):
        book = make_book(title="Dune")
        assert not matches(evaluator, book, "title", "sounds_like", "dune")
