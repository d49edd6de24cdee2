"""
Tests for the series-wide rule fields (seriesStatus, seriesGaps, seriesPosition).
"""

import pytest

from conftest import make_book
from magicshelf.composite import SeriesIndex, series_gaps, series_position, series_status
from magicshelf.models import Rule
from magicshelf.rules import RuleEvaluator


def series(*entries, name="Saga", total=None):
    """Books of one series from (number, status) pairs."""
    return [
        make_book(i + 1, series_name=name, series_number=number, series_total=total, read_status=status)
        for i, (number, status) in enumerate(entries)
    ]


class TestSeriesIndex:

    def test_groups_by_exact_series_name(self):
        # Given: Books whose series names differ only in case
        books = [
            make_book(1, series_name="Dune"),
            make_book(2, series_name="dune"),
            make_book(3, series_name="Dune"),
            make_book(4),
        ]

        # When: Indexing them
        index = SeriesIndex(books)

        # Then: Names are matched exactly and books without a series are left out
        assert [b.id for b in index.siblings("Dune")] == [1, 3]
        assert [b.id for b in index.siblings("dune")] == [2]
        assert index.siblings("Foundation") == []
        assert len(index) == 2


class TestSeriesStatus:

    def test_reading(self):
        assert series_status(series((1, "READ"), (2, "READING")), "reading")
        assert series_status(series((1, "RE_READING")), "reading")
        assert not series_status(series((1, "READ"), (2, "UNREAD")), "reading")

    def test_not_started(self):
        assert series_status(series((1, "UNREAD"), (2, None)), "not_started")
        assert not series_status(series((1, "UNREAD"), (2, "PARTIALLY_READ")), "not_started")

    def test_fully_read(self):
        assert series_status(series((1, "READ"), (2, "READ")), "fully_read")
        assert not series_status(series((1, "READ"), (2, "READING")), "fully_read")

    def test_completed_when_last_number_is_present(self):
        books = series((1, "READ"), (3, "UNREAD"), total=3)
        assert series_status(books, "completed")
        assert not series_status(books, "ongoing")

    def test_ongoing_when_last_number_is_missing(self):
        books = series((1, "READ"), (2, "UNREAD"), total=5)
        assert series_status(books, "ongoing")
        assert not series_status(books, "completed")

    def test_completed_and_ongoing_need_a_total(self):
        books = series((1, "READ"), (2, "UNREAD"))
        assert not series_status(books, "completed")
        assert not series_status(books, "ongoing")

    def test_unknown_value(self):
        assert not series_status(series((1, "READ")), "abandoned")


class TestSeriesGaps:

    def test_any_gap(self):
        assert series_gaps(series((1, None), (3, None)), "any_gap")
        assert not series_gaps(series((1, None), (2, None), (3, None)), "any_gap")

    def test_half_numbers_count_as_their_floor(self):
        assert not series_gaps(series((1, None), (1.5, None), (2, None)), "any_gap")

    def test_missing_first(self):
        assert series_gaps(series((2, None), (3, None)), "missing_first")
        assert not series_gaps(series((1, None), (3, None)), "missing_first")

    def test_missing_latest(self):
        assert series_gaps(series((1, None), (2, None), total=4), "missing_latest")
        assert not series_gaps(series((1, None), (4, None), total=4), "missing_latest")
        assert not series_gaps(series((1, None), (2, None)), "missing_latest")

    def test_duplicate_number(self):
        assert series_gaps(series((1, None), (1, None)), "duplicate_number")
        assert not series_gaps(series((1, None), (1.5, None)), "duplicate_number")

    def test_no_numbers_never_matches(self):
        assert not series_gaps(series((None, None)), "missing_first")


class TestSeriesPosition:

    def test_first_and_last(self):
        books = series((1, None), (2, None), (3, None))
        assert series_position(books[0], books, "first_in_series")
        assert not series_position(books[1], books, "first_in_series")
        assert series_position(books[2], books, "last_in_series")

    def test_next_unread(self, dune_series):
        first, second, third = dune_series
        assert series_position(second, dune_series, "next_unread")
        assert not series_position(third, dune_series, "next_unread")
        assert not series_position(first, dune_series, "next_unread")

    def test_next_unread_needs_an_earlier_read_book(self):
        books = series((1, "UNREAD"), (2, "UNREAD"))
        assert not series_position(books[0], books, "next_unread")

    def test_book_without_number_never_matches(self):
        books = series((1, None), (None, None))
        assert not series_position(books[1], books, "first_in_series")


class TestCompositeRules:
    """Composite fields through the rule evaluator."""

    @pytest.fixture
    def evaluator(self, clock):
        return RuleEvaluator(clock=clock)

    def test_next_unread_picks_the_second_dune_book(self, evaluator, dune_series):
        # Given: Dune #1 read, #2 and #3 unread
        rule = Rule(field="seriesPosition", operator="equals", value="next_unread")

        # When: Evaluating each book against the whole series
        results = [evaluator.evaluate_rule(b, rule, dune_series) for b in dune_series]

        # Then: Only Dune Messiah is next
        assert results == [False, True, False]

    def test_not_equals_negates(self, evaluator, dune_series):
        rule = Rule(field="seriesPosition", operator="not_equals", value="next_unread")
        results = [evaluator.evaluate_rule(b, rule, dune_series) for b in dune_series]
        assert results == [True, False, True]

    def test_value_is_case_insensitive(self, evaluator, dune_series):
        rule = Rule(field="seriesStatus", operator="equals", value="NOT_STARTED")
        assert not evaluator.evaluate_rule(dune_series[0], rule, dune_series)

    def test_book_without_series_never_matches(self, evaluator):
        book = make_book(9)
        for operator in ("equals", "not_equals"):
            rule = Rule(field="seriesStatus", operator=operator, value="not_started")
            assert not evaluator.evaluate_rule(book, rule, [book])

    def test_without_collection_only_the_empty_series_is_seen(self, evaluator, dune_series):
        # Given: No collection passed in
        rule = Rule(field="seriesStatus", operator="equals", value="not_started")

        # Then: The sibling list is empty, so nothing has been started
        assert evaluator.evaluate_rule(dune_series[0], rule)
