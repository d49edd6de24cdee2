"""
Flat faceted filtering (sidebar and table filters).

Active filters are a flat mapping ``{dimension: [selected values]}`` with one
join mode for the whole set. Within a multi-valued dimension (authors,
shelves, ...) the mode also decides whether the book needs any or all of the
selected values; bucketed numeric dimensions always match if the value falls
in any selected bucket.

An empty selection matches everything in ``or`` mode and nothing otherwise.
``single`` mode matches like ``and``. Unknown dimensions match nothing.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from ..dates import parse_date
from ..models import Book, BookMetadata
from ..operators import id_string
from .ranges import (
    is_age_rating_in_range,
    is_file_size_in_range,
    is_match_score_in_range,
    is_page_count_in_range,
    is_rating_in_range,
    is_rating_in_range_10,
)

logger = logging.getLogger(__name__)

FILTER_MODES = ('and', 'or', 'single')

_NO_METADATA = BookMetadata()

Matcher = Callable[[Book, Sequence[Any], str], bool]


def _meta(book: Book) -> BookMetadata:
    return book.metadata or _NO_METADATA


def _each(values: Sequence[Any], mode: str, test: Callable[[Any], bool]) -> bool:
    if mode == 'or':
        return any(test(v) for v in values)
    return all(test(v) for v in values)


def _list_matcher(attr: str) -> Matcher:
    def match(book: Book, values: Sequence[Any], mode: str) -> bool:
        present = getattr(_meta(book), attr) or []
        return _each(values, mode, lambda v: v in present)
    return match


def _scalar_matcher(attr: str) -> Matcher:
    def match(book: Book, values: Sequence[Any], mode: str) -> bool:
        actual = getattr(_meta(book), attr)
        return _each(values, mode, lambda v: actual == v)
    return match


def _bucket_matcher(read: Callable[[Book], Optional[float]], in_range: Callable[[Optional[float], Any], bool]) -> Matcher:
    def match(book: Book, values: Sequence[Any], mode: str) -> bool:
        value = read(book)
        return any(in_range(value, bucket) for bucket in values)
    return match


def _match_library(book: Book, values: Sequence[Any], mode: str) -> bool:
    if book.library_id is None:
        return False
    library = id_string(book.library_id)
    return _each(values, mode, lambda v: id_string(v) == library)


def _match_shelf(book: Book, values: Sequence[Any], mode: str) -> bool:
    shelf_ids = {id_string(s.id) for s in book.shelves}
    return _each(values, mode, lambda v: id_string(v) in shelf_ids)


def _match_shelf_status(book: Book, values: Sequence[Any], mode: str) -> bool:
    return ('shelved' if book.shelves else 'unshelved') in values


def _match_read_status(book: Book, values: Sequence[Any], mode: str) -> bool:
    return book.status in values


def _match_book_type(book: Book, values: Sequence[Any], mode: str) -> bool:
    return book.book_type in values


def _published_year(book: Book) -> Optional[int]:
    published = parse_date(_meta(book).published_date)
    return published.year if isinstance(published, datetime) else None


def _match_published_year(book: Book, values: Sequence[Any], mode: str) -> bool:
    year = _published_year(book)
    if year is None:
        return False
    return any(id_string(v) == str(year) for v in values)


def _match_language(book: Book, values: Sequence[Any], mode: str) -> bool:
    return _meta(book).language in values


def _match_content_rating(book: Book, values: Sequence[Any], mode: str) -> bool:
    return _meta(book).content_rating in values


FILTER_MATCHERS: Dict[str, Matcher] = {
    'author': _list_matcher('authors'),
    'category': _list_matcher('categories'),
    'tag': _list_matcher('tags'),
    'mood': _list_matcher('moods'),
    'series': _scalar_matcher('series_name'),
    'publisher': _scalar_matcher('publisher'),
    'library': _match_library,
    'shelf': _match_shelf,
    'shelfStatus': _match_shelf_status,
    'readStatus': _match_read_status,
    'bookType': _match_book_type,
    'publishedDate': _match_published_year,
    'language': _match_language,
    'contentRating': _match_content_rating,
    'personalRating': _bucket_matcher(lambda b: b.personal_rating, is_rating_in_range_10),
    'matchScore': _bucket_matcher(lambda b: b.metadata_match_score, is_match_score_in_range),
    'fileSize': _bucket_matcher(lambda b: b.file_size_kb, is_file_size_in_range),
    'pageCount': _bucket_matcher(lambda b: _meta(b).page_count, is_page_count_in_range),
    'amazonRating': _bucket_matcher(lambda b: _meta(b).amazon_rating, is_rating_in_range),
    'goodreadsRating': _bucket_matcher(lambda b: _meta(b).goodreads_rating, is_rating_in_range),
    'hardcoverRating': _bucket_matcher(lambda b: _meta(b).hardcover_rating, is_rating_in_range),
    'ageRating': _bucket_matcher(lambda b: _meta(b).age_rating, is_age_rating_in_range),
}


def does_book_match_filter(book: Book, filter_type: str, filter_values: Sequence[Any], mode: str) -> bool:
    """Whether ``book`` matches one active dimension."""
    if not isinstance(filter_values, (list, tuple)) or len(filter_values) == 0:
        return mode == 'or'

    matcher = FILTER_MATCHERS.get(filter_type)
    if matcher is None:
        logger.debug(f"Unknown filter dimension '{filter_type}', matching nothing")
        return False
    return matcher(book, filter_values, mode)


def filter_books_by_filters(
    books: Iterable[Book],
    active_filters: Optional[Mapping[str, Sequence[Any]]],
    mode: str = 'and',
    exclude_filter_type: Optional[str] = None,
) -> List[Book]:
    """
    Apply the active filters to ``books``.

    Args:
        books: Books to filter
        active_filters: ``{dimension: [selected values]}``
        mode: 'and', 'or' or 'single'
        exclude_filter_type: Dimension to ignore, used to compute that
            dimension's own facets without filtering it by itself

    Returns:
        Matching books in their original order; the input itself when no
        filter applies
    """
    if not active_filters:
        return books

    entries = [(k, v) for k, v in active_filters.items() if k != exclude_filter_type]
    if not entries:
        return books

    combine = any if mode == 'or' else all
    return [
        book for book in books
        if combine(does_book_match_filter(book, key, values, mode) for key, values in entries)
    ]
