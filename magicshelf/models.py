"""
Data models for magicshelf.

Books are plain in-memory records supplied by the caller (usually decoded
from the JSON API shape of a book); the engine never mutates them. Rules and
groups form the boolean expression tree persisted for a magic shelf:

    node  := Rule | Group
    Rule  := {field, operator, value, valueStart?, valueEnd?}
    Group := {join: 'and' | 'or', rules: [node, ...]}
"""

import re
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')

DateLike = Union[str, datetime, None]

# Per-format reading progress sub-objects carried by a book record
PROGRESS_FORMATS = ('koreader', 'kobo', 'pdf', 'epub', 'cbx', 'audiobook')


def camel_to_snake(name: str) -> str:
    """Convert an API key such as ``seriesName`` to ``series_name``."""
    return _CAMEL_BOUNDARY.sub('_', name).lower()


class ReadStatus(str, Enum):
    """Reading status of a book. Members compare equal to their string value."""
    UNREAD = 'UNREAD'
    READING = 'READING'
    RE_READING = 'RE_READING'
    PARTIALLY_READ = 'PARTIALLY_READ'
    PAUSED = 'PAUSED'
    READ = 'READ'
    WONT_READ = 'WONT_READ'
    ABANDONED = 'ABANDONED'
    UNSET = 'UNSET'


@dataclass
class Shelf:
    id: int
    name: Optional[str] = None


@dataclass
class Library:
    id: int
    name: Optional[str] = None


@dataclass
class ReadingProgress:
    percentage: Optional[float] = None


@dataclass
class BookMetadata:
    """Descriptive metadata of a book. Every attribute is optional."""
    title: Optional[str] = None
    subtitle: Optional[str] = None
    authors: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    moods: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    publisher: Optional[str] = None
    published_date: DateLike = None
    series_name: Optional[str] = None
    series_number: Optional[float] = None
    series_total: Optional[int] = None
    page_count: Optional[int] = None
    language: Optional[str] = None
    isbn13: Optional[str] = None
    isbn10: Optional[str] = None
    description: Optional[str] = None
    narrator: Optional[str] = None
    age_rating: Optional[int] = None
    content_rating: Optional[str] = None
    abridged: Optional[bool] = None
    amazon_rating: Optional[float] = None
    amazon_review_count: Optional[int] = None
    goodreads_rating: Optional[float] = None
    goodreads_review_count: Optional[int] = None
    hardcover_rating: Optional[float] = None
    hardcover_review_count: Optional[int] = None
    ranobedb_rating: Optional[float] = None
    lubimyczytac_rating: Optional[float] = None
    audible_rating: Optional[float] = None
    audible_review_count: Optional[int] = None
    audiobook_duration: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BookMetadata':
        """Create from a camelCase (or snake_case) metadata mapping."""
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = camel_to_snake(key)
            if name in known:
                kwargs[name] = value

        audiobook = data.get('audiobookMetadata')
        if isinstance(audiobook, dict) and 'audiobook_duration' not in kwargs:
            kwargs['audiobook_duration'] = audiobook.get('durationSeconds')

        for list_field in ('authors', 'categories', 'moods', 'tags'):
            if kwargs.get(list_field) is None:
                kwargs.pop(list_field, None)
            elif not isinstance(kwargs[list_field], list):
                kwargs[list_field] = [kwargs[list_field]]

        return cls(**kwargs)


@dataclass
class Book:
    """
    A book record as seen by the rule and filter engines.

    ``metadata`` may be entirely absent. ``progress`` maps a format name from
    PROGRESS_FORMATS to its reading progress. ``extra`` holds attributes that
    are not part of the declared record shape; custom rule fields are looked
    up there.
    """
    id: int
    library_id: Optional[int] = None
    shelves: List[Shelf] = field(default_factory=list)
    read_status: Optional[str] = None
    book_type: Optional[str] = None
    file_size_kb: Optional[float] = None
    metadata_match_score: Optional[float] = None
    personal_rating: Optional[float] = None
    date_finished: DateLike = None
    last_read_time: DateLike = None
    added_on: DateLike = None
    is_physical: Optional[bool] = None
    metadata: Optional[BookMetadata] = None
    progress: Dict[str, ReadingProgress] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def effective_progress(self) -> float:
        """Highest percentage across all progress sub-objects, 0 if none."""
        percentages = [p.percentage for p in self.progress.values() if p and p.percentage is not None]
        return max([0] + percentages)

    @property
    def status(self) -> str:
        return self.read_status or ReadStatus.UNSET.value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Book':
        """
        Create a Book from the camelCase API shape.

        Example:
            Book.from_dict({
                'id': 1,
                'libraryId': 2,
                'shelves': [{'id': 5, 'name': 'Favourites'}],
                'metadata': {'title': 'Dune', 'seriesName': 'Dune', 'seriesNumber': 1},
                'epubProgress': {'percentage': 42.0},
            })
        """
        known = {f.name for f in fields(cls)} - {'metadata', 'shelves', 'progress', 'extra'}
        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = dict(data.get('extra') or {})
        progress: Dict[str, ReadingProgress] = {}
        progress_keys = {f'{fmt}Progress': fmt for fmt in PROGRESS_FORMATS}

        for key, value in data.items():
            if key in ('metadata', 'shelves', 'extra'):
                continue
            if key in progress_keys:
                if isinstance(value, dict):
                    progress[progress_keys[key]] = ReadingProgress(value.get('percentage'))
                continue
            if key == 'primaryFile':
                if isinstance(value, dict) and value.get('bookType'):
                    kwargs.setdefault('book_type', value['bookType'])
                continue
            name = camel_to_snake(key)
            if name in known:
                kwargs[name] = value
            else:
                extra[key] = value

        metadata = data.get('metadata')
        shelves = [
            s if isinstance(s, Shelf) else Shelf(id=s.get('id'), name=s.get('name'))
            for s in (data.get('shelves') or [])
        ]

        return cls(
            metadata=BookMetadata.from_dict(metadata) if isinstance(metadata, dict) else metadata,
            shelves=shelves,
            progress=progress,
            extra=extra,
            **kwargs
        )


@dataclass
class Rule:
    """A leaf predicate: ``field operator value``."""
    field: str
    operator: str
    value: Any = None
    value_start: Any = None
    value_end: Any = None


@dataclass
class Group:
    """A boolean node joining rules and nested groups with AND/OR."""
    join: str = 'and'
    rules: List['RuleNode'] = field(default_factory=list)
    name: Optional[str] = None


RuleNode = Union[Rule, Group]


@dataclass
class MagicShelf:
    """A saved rule group acting as a dynamically evaluated collection."""
    id: Optional[int]
    name: str
    filter_json: Optional[str] = None
    icon: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MagicShelf':
        return cls(
            id=data.get('id'),
            name=data.get('name', ''),
            filter_json=data.get('filterJson', data.get('filter_json')),
            icon=data.get('icon'),
        )
