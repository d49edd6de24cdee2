"""
Facet aggregation for the filter sidebar.

For a dimension, every book contributes the values returned by the
dimension's extractor; equal ids are merged and counted. Dimensions with an
intrinsic order (range buckets) sort by ``sort_index``, the others by
descending count. Ties break on the case-insensitive display name.

Cascading facets compute a dimension's candidates with every *other* active
filter applied, so selecting a value never hides its siblings.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from ..dates import parse_date
from ..models import Book, BookMetadata, ReadStatus
from .ranges import (
    AGE_RATING_OPTIONS,
    FILE_SIZE_RANGES,
    MATCH_SCORE_RANGES,
    PAGE_COUNT_RANGES,
    RATING_OPTIONS_10,
    RATING_RANGES_5,
    RangeConfig,
    find_bucket,
    normalize_match_score,
)
from .sidebar import filter_books_by_filters

logger = logging.getLogger(__name__)

MAX_FILTER_ITEMS = 100
_UNSORTED = 999

READ_STATUS_LABELS: Dict[str, str] = {
    ReadStatus.UNREAD.value: 'Unread',
    ReadStatus.READING.value: 'Reading',
    ReadStatus.RE_READING.value: 'Re-reading',
    ReadStatus.PARTIALLY_READ.value: 'Partially Read',
    ReadStatus.PAUSED.value: 'Paused',
    ReadStatus.READ.value: 'Read',
    ReadStatus.WONT_READ.value: "Won't Read",
    ReadStatus.ABANDONED.value: 'Abandoned',
    ReadStatus.UNSET.value: 'Unset',
}

CONTENT_RATING_LABELS: Dict[str, str] = {
    'EVERYONE': 'Everyone',
    'TEEN': 'Teen',
    'MATURE': 'Mature',
    'ADULT': 'Adult',
    'EXPLICIT': 'Explicit',
}


@dataclass(frozen=True)
class FacetValue:
    id: Any
    name: str
    sort_index: Optional[int] = None


@dataclass
class Facet:
    """A selectable value of a dimension and the number of books carrying it."""
    value: FacetValue
    book_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        value: Dict[str, Any] = {'id': self.value.id, 'name': self.value.name}
        if self.value.sort_index is not None:
            value['sortIndex'] = self.value.sort_index
        return {'value': value, 'bookCount': self.book_count}


@dataclass(frozen=True)
class FilterConfig:
    label: str
    sort_mode: str = 'count'
    numeric_id: bool = False


Extractor = Callable[[Book], List[FacetValue]]

_NO_METADATA = BookMetadata()


def _meta(book: Book) -> BookMetadata:
    return book.metadata or _NO_METADATA


def _bucket_value(bucket: Optional[RangeConfig]) -> List[FacetValue]:
    return [FacetValue(bucket.id, bucket.label, bucket.sort_index)] if bucket else []


def _in_buckets(read: Callable[[Book], Optional[float]], ranges: Sequence[RangeConfig]) -> Extractor:
    return lambda book: _bucket_value(find_bucket(read(book), ranges))


def _strings(attr: str) -> Extractor:
    return lambda book: [FacetValue(name, name) for name in (getattr(_meta(book), attr) or [])]


def _single(read: Callable[[Book], Optional[str]]) -> Extractor:
    def extract(book: Book) -> List[FacetValue]:
        value = read(book)
        return [FacetValue(value, value)] if value else []
    return extract


def _read_status(book: Book) -> List[FacetValue]:
    status = book.status if book.status in READ_STATUS_LABELS else ReadStatus.UNSET.value
    return [FacetValue(status, READ_STATUS_LABELS[status])]


def _personal_rating(book: Book) -> List[FacetValue]:
    rating = book.personal_rating
    if not rating or rating < 1 or rating > 10:
        return []
    return _bucket_value(next((r for r in RATING_OPTIONS_10 if r.id == rating), None))


def _shelves(book: Book) -> List[FacetValue]:
    return [FacetValue(s.id, s.name or f'Shelf {s.id}') for s in book.shelves]


def _shelf_status(book: Book) -> List[FacetValue]:
    if book.shelves:
        return [FacetValue('shelved', 'Shelved')]
    return [FacetValue('unshelved', 'Unshelved')]


def _published_year(book: Book) -> List[FacetValue]:
    published = parse_date(_meta(book).published_date)
    if published is None:
        return []
    year = str(published.year)
    return [FacetValue(year, year)]


def _age_rating(book: Book) -> List[FacetValue]:
    age = _meta(book).age_rating
    if age is None:
        return []
    return _bucket_value(next((r for r in AGE_RATING_OPTIONS if r.id == age), None))


def _content_rating(book: Book) -> List[FacetValue]:
    rating = _meta(book).content_rating
    if not rating:
        return []
    return [FacetValue(rating, CONTENT_RATING_LABELS.get(rating, rating))]


def _library(book: Book) -> List[FacetValue]:
    if book.library_id is None:
        return []
    return [FacetValue(book.library_id, f'Library {book.library_id}')]


def _named_library(library_names: Mapping[int, str]) -> Extractor:
    return lambda book: [FacetValue(v.id, library_names.get(v.id) or v.name) for v in _library(book)]


FILTER_EXTRACTORS: Dict[str, Extractor] = {
    'author': _strings('authors'),
    'category': _strings('categories'),
    'series': _single(lambda b: _meta(b).series_name),
    'bookType': _single(lambda b: b.book_type),
    'readStatus': _read_status,
    'personalRating': _personal_rating,
    'publisher': _single(lambda b: _meta(b).publisher),
    'matchScore': _in_buckets(lambda b: normalize_match_score(b.metadata_match_score), MATCH_SCORE_RANGES),
    'library': _library,
    'shelf': _shelves,
    'shelfStatus': _shelf_status,
    'tag': _strings('tags'),
    'publishedDate': _published_year,
    'fileSize': _in_buckets(lambda b: b.file_size_kb, FILE_SIZE_RANGES),
    'amazonRating': _in_buckets(lambda b: _meta(b).amazon_rating, RATING_RANGES_5),
    'goodreadsRating': _in_buckets(lambda b: _meta(b).goodreads_rating, RATING_RANGES_5),
    'hardcoverRating': _in_buckets(lambda b: _meta(b).hardcover_rating, RATING_RANGES_5),
    'language': _single(lambda b: _meta(b).language),
    'pageCount': _in_buckets(lambda b: _meta(b).page_count, PAGE_COUNT_RANGES),
    'mood': _strings('moods'),
    'ageRating': _age_rating,
    'contentRating': _content_rating,
}

FILTER_CONFIGS: Dict[str, FilterConfig] = {
    'author': FilterConfig('Author'),
    'category': FilterConfig('Genre'),
    'series': FilterConfig('Series'),
    'bookType': FilterConfig('Book Type'),
    'readStatus': FilterConfig('Read Status'),
    'personalRating': FilterConfig('Personal Rating', 'sortIndex', numeric_id=True),
    'publisher': FilterConfig('Publisher'),
    'matchScore': FilterConfig('Metadata Match Score', 'sortIndex', numeric_id=True),
    'library': FilterConfig('Library', numeric_id=True),
    'shelf': FilterConfig('Shelf', numeric_id=True),
    'shelfStatus': FilterConfig('Shelf Status'),
    'tag': FilterConfig('Tag'),
    'publishedDate': FilterConfig('Published Year'),
    'fileSize': FilterConfig('File Size', 'sortIndex', numeric_id=True),
    'amazonRating': FilterConfig('Amazon Rating', 'sortIndex', numeric_id=True),
    'goodreadsRating': FilterConfig('Goodreads Rating', 'sortIndex', numeric_id=True),
    'hardcoverRating': FilterConfig('Hardcover Rating', 'sortIndex', numeric_id=True),
    'language': FilterConfig('Language'),
    'pageCount': FilterConfig('Page Count', 'sortIndex', numeric_id=True),
    'mood': FilterConfig('Mood'),
    'ageRating': FilterConfig('Age Rating', 'sortIndex', numeric_id=True),
    'contentRating': FilterConfig('Content Rating'),
}

NUMERIC_ID_FILTER_TYPES = frozenset(k for k, c in FILTER_CONFIGS.items() if c.numeric_id)


def _name_key(facet: Facet) -> str:
    return str(facet.value.name or '').casefold()


def sort_facets(facets: List[Facet], sort_mode: str = 'count') -> List[Facet]:
    if sort_mode == 'sortIndex':
        return sorted(facets, key=lambda f: (
            f.value.sort_index if f.value.sort_index is not None else _UNSORTED, _name_key(f)
        ))
    return sorted(facets, key=lambda f: (-f.book_count, _name_key(f)))


def build_facets(
    books: Iterable[Book],
    extractor: Extractor,
    sort_mode: str = 'count',
    limit: int = MAX_FILTER_ITEMS,
) -> List[Facet]:
    """Count extracted values over ``books`` and return at most ``limit`` sorted facets."""
    by_id: Dict[Any, Facet] = {}
    for book in books:
        for item in extractor(book):
            facet = by_id.get(item.id)
            if facet is None:
                facet = by_id[item.id] = Facet(item)
            facet.book_count += 1
    return sort_facets(list(by_id.values()), sort_mode)[:limit]


def cascading_facets(
    books: Sequence[Book],
    filter_type: str,
    active_filters: Optional[Mapping[str, Sequence[Any]]] = None,
    mode: str = 'and',
    limit: int = MAX_FILTER_ITEMS,
    library_names: Optional[Mapping[int, str]] = None,
) -> List[Facet]:
    """
    Facets of ``filter_type`` over the books matching every other active filter.

    Library facets carry the library's name from ``library_names`` when known.
    """
    extractor = FILTER_EXTRACTORS.get(filter_type)
    if extractor is None:
        logger.debug(f"No facet extractor for '{filter_type}'")
        return []

    if filter_type == 'library' and library_names:
        extractor = _named_library(library_names)

    config = FILTER_CONFIGS[filter_type]
    filtered = filter_books_by_filters(books, active_filters, mode, exclude_filter_type=filter_type)
    return build_facets(filtered, extractor, config.sort_mode, limit)
