"""
Composite (series-wide) rule fields.

``seriesStatus``, ``seriesGaps`` and ``seriesPosition`` are not properties of
a single book: they are decided by looking at every book that shares the
book's series name (exact, case-sensitive match). A book without a series
name, or without the series number a position check needs, never matches.
``not_equals`` negates the positive result.
"""

import logging
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from .models import Book, ReadStatus, Rule

logger = logging.getLogger(__name__)

_STARTED = frozenset(s.value for s in (
    ReadStatus.READ, ReadStatus.READING, ReadStatus.RE_READING, ReadStatus.PARTIALLY_READ,
))
_IN_PROGRESS = frozenset(s.value for s in (ReadStatus.READING, ReadStatus.RE_READING))


def _series_name(book: Book) -> Optional[str]:
    return book.metadata.series_name if book.metadata else None


def _series_number(book: Book) -> Optional[float]:
    return book.metadata.series_number if book.metadata else None


def _series_total(book: Book) -> Optional[float]:
    return book.metadata.series_total if book.metadata else None


class SeriesIndex:
    """
    Books grouped by series name.

    Build it once per collection when evaluating many books; otherwise each
    composite rule rescans the collection.
    """

    def __init__(self, books: Iterable[Book] = ()):
        self._by_name: Dict[str, List[Book]] = defaultdict(list)
        for book in books:
            name = _series_name(book)
            if name:
                self._by_name[name].append(book)

    def siblings(self, series_name: str) -> List[Book]:
        return self._by_name.get(series_name, [])

    def __len__(self) -> int:
        return len(self._by_name)


def _max_total(series: List[Book]) -> Optional[float]:
    totals = [t for t in (_series_total(b) for b in series) if t is not None]
    return max(totals) if totals else None


def _has_number(series: List[Book], number: float) -> bool:
    return any(
        _series_number(b) is not None and math.floor(_series_number(b)) == number
        for b in series
    )


def series_status(series: List[Book], value: str) -> bool:
    if value == 'reading':
        return any(b.status in _IN_PROGRESS for b in series)
    if value == 'not_started':
        return not any(b.status in _STARTED for b in series)
    if value == 'fully_read':
        return len(series) > 0 and all(b.status == ReadStatus.READ for b in series)
    if value in ('completed', 'ongoing'):
        max_total = _max_total(series)
        if max_total is None:
            return False
        complete = _has_number(series, max_total)
        return complete if value == 'completed' else not complete
    return False


def series_gaps(series: List[Book], value: str) -> bool:
    numbers = [n for n in (_series_number(b) for b in series) if n is not None]
    if not numbers:
        return False

    if value == 'any_gap':
        floors = {math.floor(n) for n in numbers}
        return len(floors) < max(floors)
    if value == 'missing_first':
        return not any(math.floor(n) == 1 for n in numbers)
    if value == 'missing_latest':
        max_total = _max_total(series)
        if max_total is None:
            return False
        return not any(math.floor(n) == max_total for n in numbers)
    if value == 'duplicate_number':
        return len(numbers) > len(set(numbers))
    return False


def series_position(book: Book, series: List[Book], value: str) -> bool:
    number = _series_number(book)
    if number is None:
        return False

    numbered = [b for b in series if _series_number(b) is not None]
    if not numbered:
        return False

    if value == 'first_in_series':
        return number == min(_series_number(b) for b in numbered)
    if value == 'last_in_series':
        return number == max(_series_number(b) for b in numbered)
    if value == 'next_unread':
        if book.status == ReadStatus.READ:
            return False
        earlier = [b for b in numbered if _series_number(b) < number]
        if any(b.status != ReadStatus.READ for b in earlier):
            return False
        return any(b.status == ReadStatus.READ for b in earlier)
    return False


class CompositeFieldEvaluator:
    """Evaluates rules on the series-wide fields."""

    def evaluate(self, book: Book, rule: Rule, series_index: SeriesIndex) -> bool:
        name = _series_name(book)
        if not name:
            return False

        series = series_index.siblings(name)
        value = rule.value.lower() if isinstance(rule.value, str) else ''

        if rule.field == 'seriesStatus':
            result = series_status(series, value)
        elif rule.field == 'seriesGaps':
            result = series_gaps(series, value)
        elif rule.field == 'seriesPosition':
            result = series_position(book, series, value)
        else:
            logger.debug(f"'{rule.field}' is not a composite field")
            result = False

        return not result if rule.operator == 'not_equals' else result
