"""
magicshelf - Rule-based smart shelves and faceted filtering for book collections.

Main API:
    from magicshelf import Book, RuleEvaluator, loads_rule_group

    books = [Book.from_dict(item) for item in api_books]

    # A magic shelf is a persisted rule group
    group = loads_rule_group('''{
        "name": "Unread Sci-Fi", "type": "group", "join": "and",
        "rules": [
            {"field": "categories", "operator": "includes_any", "value": ["science fiction"]},
            {"field": "readStatus", "operator": "equals", "value": "UNREAD"}
        ]
    }''')
    shelf = RuleEvaluator().filter(books, group)

    # Sidebar filters with cascading facets
    from magicshelf.filters import cascading_facets, filter_books_by_filters

    active = {'author': ['Frank Herbert']}
    visible = filter_books_by_filters(books, active, mode='and')
    tags = cascading_facets(books, 'tag', active, mode='and')
"""

from .models import Book, BookMetadata, Group, Library, MagicShelf, Rule, Shelf
from .rules import RuleEvaluator, evaluate_group, filter_by_rule_group
from .serialization import dumps_rule_group, loads_rule_group, parse_rule_group
from .service import MagicShelfService

__version__ = "0.1.0"
__all__ = [
    "Book",
    "BookMetadata",
    "Group",
    "Library",
    "MagicShelf",
    "MagicShelfService",
    "Rule",
    "RuleEvaluator",
    "Shelf",
    "dumps_rule_group",
    "evaluate_group",
    "filter_by_rule_group",
    "loads_rule_group",
    "parse_rule_group",
]
