"""
Rule-group evaluation for magic shelves.

A magic shelf is a saved rule group; a book belongs to the shelf when the
group evaluates to True for it. Evaluation is a recursive descent over the
Rule | Group tree:

    evaluate_group(book, group) = all(children) if join == 'and'
                                  any(children) if join == 'or'

so an empty AND group is True and an empty OR group is False. Rules on the
series-wide fields need the whole collection, which is passed through
unchanged to every level of the tree.

Example:
    from magicshelf.rules import RuleEvaluator
    from magicshelf.models import Group, Rule

    shelf = Group(join='and', rules=[
        Rule(field='fileType', operator='equals', value='epub'),
        Group(join='or', rules=[
            Rule(field='authors', operator='includes_any', value=['Frank Herbert']),
            Rule(field='seriesStatus', operator='equals', value='reading'),
        ]),
    ])
    matches = RuleEvaluator().filter(books, shelf)
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence, Union

from .composite import CompositeFieldEvaluator, SeriesIndex
from .dates import utcnow
from .fields import COMPOSITE_FIELDS, NUMERIC_ID_FIELDS, lookup_field
from .models import Book, Group, Rule, RuleNode
from .operators import Operands, evaluate_operator, id_string, map_file_type, normalize

logger = logging.getLogger(__name__)

BookCollection = Union[SeriesIndex, Sequence[Book]]


def _rule_list(rule: Rule) -> List[str]:
    """Rule value(s) as the lower-cased strings the multi-value operators compare."""
    numeric_id = rule.field in NUMERIC_ID_FIELDS
    file_type = rule.field == 'fileType'

    def convert(item) -> str:
        if numeric_id:
            return id_string(item)
        lowered = id_string(item).lower()
        return map_file_type(lowered) if file_type else lowered

    if isinstance(rule.value, (list, tuple)):
        return [convert(v) for v in rule.value]
    return [convert(rule.value)] if rule.value else []


class RuleEvaluator:
    """
    Evaluates rules and rule groups against books.

    The evaluator holds no state between calls apart from the clock used by
    the relative-date operators, which can be replaced for testing.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utcnow
        self._composite = CompositeFieldEvaluator()

    def evaluate_group(self, book: Book, group: Group, all_books: BookCollection = ()) -> bool:
        """
        Decide whether ``book`` satisfies ``group``.

        Args:
            book: The book under test
            group: Root of the rule tree
            all_books: Collection used by the series-wide fields, either the
                books themselves or a prebuilt SeriesIndex

        Returns:
            True if the book matches
        """
        series_index = all_books if isinstance(all_books, SeriesIndex) else SeriesIndex(all_books)
        return self._evaluate_node(book, group, series_index)

    def evaluate_rule(self, book: Book, rule: Rule, all_books: BookCollection = ()) -> bool:
        series_index = all_books if isinstance(all_books, SeriesIndex) else SeriesIndex(all_books)
        return self._evaluate_rule(book, rule, series_index)

    def filter(self, books: Iterable[Book], group: Group) -> List[Book]:
        """Books from ``books`` matching ``group``, in their original order."""
        books = list(books)
        series_index = SeriesIndex(books)
        return [book for book in books if self._evaluate_node(book, group, series_index)]

    def _evaluate_node(self, book: Book, node: RuleNode, series_index: SeriesIndex) -> bool:
        if isinstance(node, Group):
            results = [self._evaluate_node(book, child, series_index) for child in node.rules]
            if node.join == 'and':
                return all(results)
            return any(results)
        if isinstance(node, Rule):
            return self._evaluate_rule(book, node, series_index)
        raise TypeError(f"Expected Rule or Group, got {type(node).__name__}")

    def _evaluate_rule(self, book: Book, rule: Rule, series_index: SeriesIndex) -> bool:
        if rule.field in COMPOSITE_FIELDS:
            return self._composite.evaluate(book, rule, series_index)

        spec = lookup_field(rule.field)
        operands = Operands(
            rule=rule,
            value=normalize(spec.extract(book)),
            rule_value=normalize(rule.value),
            rule_start=normalize(rule.value_start),
            rule_end=normalize(rule.value_end),
            rule_list=_rule_list(rule),
            book_list=lambda: spec.extract_array(book),
            now=self._clock(),
            numeric_id=rule.field in NUMERIC_ID_FIELDS,
            file_type=rule.field == 'fileType',
        )
        return evaluate_operator(rule.operator, operands)


def evaluate_group(book: Book, group: Group, all_books: BookCollection = ()) -> bool:
    """Module-level shortcut for ``RuleEvaluator().evaluate_group``."""
    return RuleEvaluator().evaluate_group(book, group, all_books)


def filter_by_rule_group(books: Iterable[Book], group: Group) -> List[Book]:
    """Books matching ``group``; the books themselves serve as the series collection."""
    return RuleEvaluator().filter(books, group)
