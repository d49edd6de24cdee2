"""Shared fixtures for magicshelf tests."""

from datetime import datetime, timezone

import pytest

from magicshelf.models import Book, BookMetadata, Shelf

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_book(id=1, shelves=(), **kwargs) -> Book:
    """
    Build a Book from keyword arguments.

    Keywords naming BookMetadata attributes go to the metadata, the rest to
    the book itself. Shelves may be given as ids.
    """
    meta_fields = set(BookMetadata.__dataclass_fields__)
    meta = {k: kwargs.pop(k) for k in list(kwargs) if k in meta_fields}
    if meta:
        kwargs['metadata'] = BookMetadata(**meta)
    return Book(
        id=id,
        shelves=[s if isinstance(s, Shelf) else Shelf(id=s, name=f"Shelf {s}") for s in shelves],
        **kwargs
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    """Fixed clock for the relative-date operators."""
    return lambda: NOW


@pytest.fixture
def dune_series():
    """Three Dune books: #1 read, #2 unread, #3 unread."""
    return [
        make_book(1, title="Dune", series_name="Dune", series_number=1, series_total=6, read_status="READ"),
        make_book(2, title="Dune Messiah", series_name="Dune", series_number=2, series_total=6, read_status="UNREAD"),
        make_book(3, title="Children of Dune", series_name="Dune", series_number=3, series_total=6, read_status="UNREAD"),
    ]
