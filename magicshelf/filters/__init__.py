"""
Faceted filtering for the book browser sidebar.

Example:
    from magicshelf.filters import filter_books_by_filters, cascading_facets

    active = {'author': ['Frank Herbert'], 'fileSize': ['<1mb']}
    visible = filter_books_by_filters(books, active, mode='and')
    authors = cascading_facets(books, 'author', active, mode='and')
"""

from .facets import (
    FILTER_CONFIGS,
    FILTER_EXTRACTORS,
    MAX_FILTER_ITEMS,
    Facet,
    FacetValue,
    build_facets,
    cascading_facets,
)
from .querystring import apply_filter_mode, deserialize_filters, process_filters, serialize_filters
from .sidebar import FILTER_MODES, does_book_match_filter, filter_books_by_filters

__all__ = [
    'FILTER_CONFIGS',
    'FILTER_EXTRACTORS',
    'FILTER_MODES',
    'MAX_FILTER_ITEMS',
    'Facet',
    'FacetValue',
    'apply_filter_mode',
    'build_facets',
    'cascading_facets',
    'deserialize_filters',
    'does_book_match_filter',
    'filter_books_by_filters',
    'process_filters',
    'serialize_filters',
]
