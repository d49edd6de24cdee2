"""
Value extraction for rule fields.

Every rule names a field from a closed vocabulary (FIELDS). Each entry knows
its declared type and how to read a normalized value off a book:

- text fields are lower-cased, so comparisons are case-insensitive
- list fields (authors, categories, moods, tags) become lower-cased lists
- date fields become aware datetimes, or None when absent/unparsable
- readingProgress is the maximum percentage across all progress formats

Names outside the vocabulary resolve to an UnknownField, which reads the
book's ``extra`` mapping instead.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from .dates import parse_date
from .models import Book, BookMetadata

logger = logging.getLogger(__name__)

_NO_METADATA = BookMetadata()


class FieldType(Enum):
    STRING = 'string'
    LIST = 'list'
    NUMBER = 'number'
    DECIMAL = 'decimal'
    DATE = 'date'
    BOOLEAN = 'boolean'
    COMPOSITE = 'composite'


@dataclass(frozen=True)
class FieldSpec:
    """A field of the rule vocabulary."""
    name: str
    type: FieldType
    extract: Callable[[Book], Any]
    array: Optional[Callable[[Book], List[str]]] = None
    max: Optional[float] = None

    def extract_array(self, book: Book) -> List[str]:
        return self.array(book) if self.array else []


@dataclass(frozen=True)
class UnknownField:
    """A field outside the vocabulary, looked up in ``Book.extra``."""
    name: str
    type: FieldType = FieldType.STRING

    def extract(self, book: Book) -> Any:
        return book.extra.get(self.name)

    def extract_array(self, book: Book) -> List[str]:
        return []


def _meta(book: Book) -> BookMetadata:
    return book.metadata or _NO_METADATA


def _lower(value: Any) -> Optional[str]:
    return value.lower() if isinstance(value, str) else None


def _lower_list(values: Optional[List[Any]]) -> List[str]:
    return [str(v).lower() for v in (values or [])]


def _single(value: Any) -> List[str]:
    return ['' if value is None else str(value).lower()]


def _text(attr: str) -> Callable[[Book], Any]:
    return lambda book: _lower(getattr(_meta(book), attr))


def _text_array(attr: str) -> Callable[[Book], List[str]]:
    return lambda book: _single(getattr(_meta(book), attr))


def _list(attr: str) -> Callable[[Book], List[str]]:
    return lambda book: _lower_list(getattr(_meta(book), attr))


def _meta_attr(attr: str) -> Callable[[Book], Any]:
    return lambda book: getattr(_meta(book), attr)


def _meta_date(attr: str) -> Callable[[Book], Any]:
    return lambda book: parse_date(getattr(_meta(book), attr))


def _book_date(attr: str) -> Callable[[Book], Any]:
    return lambda book: parse_date(getattr(book, attr))


def _library_array(book: Book) -> List[str]:
    return [] if book.library_id is None else [str(book.library_id)]


def _shelf_ids(book: Book) -> List[Any]:
    return [s.id for s in book.shelves]


def _file_type(book: Book) -> Optional[str]:
    return _lower(book.book_type)


S, L, N, D, DT, B, C = (
    FieldType.STRING, FieldType.LIST, FieldType.NUMBER, FieldType.DECIMAL,
    FieldType.DATE, FieldType.BOOLEAN, FieldType.COMPOSITE,
)

_SPECS = [
    FieldSpec('library', S, lambda b: b.library_id, _library_array),
    FieldSpec('shelf', L, _shelf_ids, lambda b: [str(i) for i in _shelf_ids(b)]),
    FieldSpec('readStatus', S, lambda b: b.status, lambda b: [b.status.lower()]),
    FieldSpec('fileType', S, _file_type, lambda b: _single(_file_type(b))),
    FieldSpec('fileSize', N, lambda b: b.file_size_kb),
    FieldSpec('metadataScore', D, lambda b: b.metadata_match_score, max=100),
    FieldSpec('personalRating', D, lambda b: b.personal_rating, max=10),
    FieldSpec('dateFinished', DT, _book_date('date_finished')),
    FieldSpec('lastReadTime', DT, _book_date('last_read_time')),
    FieldSpec('addedOn', DT, _book_date('added_on')),
    FieldSpec('isPhysical', B, lambda b: b.is_physical),
    FieldSpec('readingProgress', D, lambda b: b.effective_progress, max=100),
    FieldSpec('title', S, _text('title'), _text_array('title')),
    FieldSpec('subtitle', S, _text('subtitle'), _text_array('subtitle')),
    FieldSpec('authors', L, _list('authors'), _list('authors')),
    FieldSpec('categories', L, _list('categories'), _list('categories')),
    FieldSpec('moods', L, _list('moods'), _list('moods')),
    FieldSpec('tags', L, _list('tags'), _list('tags')),
    FieldSpec('publisher', S, _text('publisher'), _text_array('publisher')),
    FieldSpec('publishedDate', DT, _meta_date('published_date')),
    FieldSpec('seriesName', S, _text('series_name'), _text_array('series_name')),
    FieldSpec('seriesNumber', N, _meta_attr('series_number')),
    FieldSpec('seriesTotal', N, _meta_attr('series_total')),
    FieldSpec('pageCount', N, _meta_attr('page_count')),
    FieldSpec('language', S, _text('language'), _text_array('language')),
    FieldSpec('isbn13', S, _text('isbn13'), _text_array('isbn13')),
    FieldSpec('isbn10', S, _text('isbn10'), _text_array('isbn10')),
    FieldSpec('description', S, _text('description'), _text_array('description')),
    FieldSpec('narrator', S, _text('narrator'), _text_array('narrator')),
    FieldSpec('contentRating', S, _text('content_rating'), _text_array('content_rating')),
    FieldSpec('ageRating', N, _meta_attr('age_rating')),
    FieldSpec('abridged', B, _meta_attr('abridged')),
    FieldSpec('audiobookDuration', N, _meta_attr('audiobook_duration')),
    FieldSpec('amazonRating', D, _meta_attr('amazon_rating'), max=5),
    FieldSpec('amazonReviewCount', N, _meta_attr('amazon_review_count')),
    FieldSpec('goodreadsRating', D, _meta_attr('goodreads_rating'), max=5),
    FieldSpec('goodreadsReviewCount', N, _meta_attr('goodreads_review_count')),
    FieldSpec('hardcoverRating', D, _meta_attr('hardcover_rating'), max=5),
    FieldSpec('hardcoverReviewCount', N, _meta_attr('hardcover_review_count')),
    FieldSpec('ranobedbRating', D, _meta_attr('ranobedb_rating'), max=5),
    FieldSpec('lubimyczytacRating', D, _meta_attr('lubimyczytac_rating'), max=5),
    FieldSpec('audibleRating', D, _meta_attr('audible_rating'), max=5),
    FieldSpec('audibleReviewCount', N, _meta_attr('audible_review_count')),
    # Evaluated against the whole series, see composite.py
    FieldSpec('seriesStatus', C, lambda b: None),
    FieldSpec('seriesGaps', C, lambda b: None),
    FieldSpec('seriesPosition', C, lambda b: None),
]

FIELDS: Dict[str, FieldSpec] = {spec.name: spec for spec in _SPECS}

COMPOSITE_FIELDS = frozenset(name for name, spec in FIELDS.items() if spec.type is FieldType.COMPOSITE)
DATE_FIELDS = frozenset(name for name, spec in FIELDS.items() if spec.type is FieldType.DATE)
NUMERIC_ID_FIELDS = frozenset({'library', 'shelf'})


def lookup_field(name: str) -> Union[FieldSpec, UnknownField]:
    spec = FIELDS.get(name)
    if spec is None:
        logger.debug(f"Field '{name}' is not in the vocabulary, reading book extras")
        return UnknownField(name)
    return spec


def field_type(name: str) -> Optional[FieldType]:
    """Declared type of a vocabulary field, None for unknown fields."""
    spec = FIELDS.get(name)
    return spec.type if spec else None


def extract_value(book: Book, field_name: str) -> Any:
    """Normalized value of ``field_name`` on ``book``."""
    return lookup_field(field_name).extract(book)


def extract_array(book: Book, field_name: str) -> List[str]:
    """
    Lower-cased string projection used by the multi-value operators.

    Single-valued text fields project to a one-element list (``''`` when
    missing); fields without a projection give an empty list.
    """
    return lookup_field(field_name).extract_array(book)
