#!/usr/bin/env python3
"""
Demonstration of magicshelf's rule engine and sidebar filters.
"""

from magicshelf import Book, MagicShelfService, loads_rule_group
from magicshelf.filters import cascading_facets, filter_books_by_filters


BOOKS = [
    {"id": 1, "libraryId": 1, "readStatus": "READ", "bookType": "EPUB", "fileSizeKb": 700,
     "addedOn": "2024-01-05T10:00:00Z",
     "metadata": {"title": "Dune", "authors": ["Frank Herbert"], "seriesName": "Dune",
                  "seriesNumber": 1, "seriesTotal": 6, "tags": ["space", "classic"]}},
    {"id": 2, "libraryId": 1, "readStatus": "UNREAD", "bookType": "EPUB", "fileSizeKb": 650,
     "metadata": {"title": "Dune Messiah", "authors": ["Frank Herbert"], "seriesName": "Dune",
                  "seriesNumber": 2, "seriesTotal": 6, "tags": ["space"]}},
    {"id": 3, "libraryId": 2, "readStatus": "READING", "primaryFile": {"bookType": "PDF"},
     "fileSizeKb": 12000, "epubProgress": {"percentage": 35},
     "metadata": {"title": "The Left Hand of Darkness", "authors": ["Ursula K. Le Guin"],
                  "tags": ["classic"], "goodreadsRating": 4.1}},
    {"id": 4, "libraryId": 2, "bookType": "CBX", "fileSizeKb": 250000,
     "metadata": {"title": "Saga, Vol. 1", "authors": ["Brian K. Vaughan", "Fiona Staples"],
                  "seriesName": "Saga", "seriesNumber": 1, "tags": ["space", "comics"]}},
]

NEXT_UP = """{
    "name": "Next up",
    "type": "group",
    "join": "or",
    "rules": [
        {"field": "seriesPosition", "operator": "equals", "value": "next_unread"},
        {"type": "group", "join": "and", "rules": [
            {"field": "readStatus", "operator": "equals", "value": "READING"},
            {"field": "readingProgress", "operator": "less_than", "value": 50}
        ]}
    ]
}"""


def main():
    """Run demo of magic shelves and faceted filters."""
    books = [Book.from_dict(item) for item in BOOKS]
    service = MagicShelfService()

    print("Magic shelf 'Next up':")
    shelf = service.create("Next up", loads_rule_group(NEXT_UP), icon="pi-bookmark")
    for book in service.filter_books_by_entity(books, shelf):
        print(f"  - {book.metadata.title}")

    print("\nExported definition:")
    print(service.export_yaml("Next up"))

    active = {"tag": ["space"], "fileSize": ["<1mb"]}
    print(f"Sidebar filters {active}:")
    for book in filter_books_by_filters(books, active, mode="and"):
        print(f"  - {book.metadata.title}")

    print("\nTag facets with the other filters applied:")
    for facet in cascading_facets(books, "tag", active, mode="and"):
        print(f"  {facet.value.name}: {facet.book_count}")


if __name__ == "__main__":
    main()
