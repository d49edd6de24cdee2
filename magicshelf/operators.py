"""
Operator evaluation for rule predicates.

Both sides of a comparison pass through ``normalize`` first: datetimes,
numbers, booleans and lists are left alone, ISO date text becomes a datetime
and any other text is lower-cased. Operators never raise; each one has a
defined result for missing or mistyped operands, and an unknown operator
name evaluates to False.

When the record value is a list, positive operators hold if *some* element
matches and negated operators require *every* element to differ.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List

from .dates import compute_date_threshold, looks_like_date, parse_date, start_of_period
from .models import Rule

logger = logging.getLogger(__name__)

MULTI_VALUE_OPERATORS = ('includes_any', 'includes_all', 'excludes_all')
EMPTY_CHECK_OPERATORS = ('is_empty', 'is_not_empty')
RELATIVE_DATE_OPERATORS = ('within_last', 'older_than', 'this_period')

# UI-facing file type names folded onto the stored book type
FILE_TYPE_SYNONYMS = {
    'cbr': 'cbx',
    'cbz': 'cbx',
    'cb7': 'cbx',
    'azw': 'azw3',
}


def normalize(value: Any) -> Any:
    if isinstance(value, date):
        return parse_date(value)
    if isinstance(value, str):
        if looks_like_date(value):
            parsed = parse_date(value)
            if parsed is not None:
                return parsed
        return value.lower()
    return value


def to_number(value: Any) -> float:
    """Numeric coercion for comparisons; NaN when the value is not numeric."""
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, datetime):
        return value.timestamp() * 1000
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def map_file_type(value: str) -> str:
    lowered = value.lower()
    return FILE_TYPE_SYNONYMS.get(lowered, lowered)


def id_string(value: Any) -> str:
    """String form of an id, rendering ``5.0`` as ``5``."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _strict_equals(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    return type(left) is type(right) and left == right


@dataclass
class Operands:
    """Everything an operator needs to decide one rule for one book."""
    rule: Rule
    value: Any
    rule_value: Any
    rule_start: Any
    rule_end: Any
    rule_list: List[str]
    book_list: Callable[[], List[str]]
    now: datetime
    numeric_id: bool = False
    file_type: bool = False

    def key(self, element: Any) -> str:
        return id_string(element) if self.numeric_id else id_string(element).lower()


def _equals(ops: Operands) -> bool:
    value, rule_value = ops.value, ops.rule_value
    if isinstance(value, list):
        return any(ops.key(v) in ops.rule_list for v in value)
    if isinstance(value, datetime) and isinstance(rule_value, datetime):
        return value == rule_value
    if ops.file_type and isinstance(rule_value, str):
        return value == map_file_type(rule_value)
    return _strict_equals(value, rule_value)


def _not_equals(ops: Operands) -> bool:
    value, rule_value = ops.value, ops.rule_value
    if isinstance(value, list):
        return all(ops.key(v) not in ops.rule_list for v in value)
    if isinstance(value, datetime) and isinstance(rule_value, datetime):
        return value != rule_value
    if ops.file_type and isinstance(rule_value, str):
        return value != map_file_type(rule_value)
    return not _strict_equals(value, rule_value)


def _text_operator(test: Callable[[str, str], bool], negated: bool = False):
    """Build a substring-style operator with its safe default for non-text operands."""
    default = negated

    def operator(ops: Operands) -> bool:
        value, needle = ops.value, ops.rule_value
        if not isinstance(needle, str):
            return default
        if isinstance(value, list):
            if negated:
                return all(not test(str(v), needle) for v in value)
            return any(test(str(v), needle) for v in value)
        if not isinstance(value, str):
            return default
        return not test(value, needle) if negated else test(value, needle)

    return operator


def _compare(test: Callable[[Any, Any], bool]):
    def operator(ops: Operands) -> bool:
        value, rule_value = ops.value, ops.rule_value
        if isinstance(value, datetime) and isinstance(rule_value, datetime):
            return test(value, rule_value)
        return test(to_number(value), to_number(rule_value))

    return operator


def _in_between(ops: Operands) -> bool:
    value, start, end = ops.value, ops.rule_start, ops.rule_end
    if value is None or start is None or end is None:
        return False
    if all(isinstance(v, datetime) for v in (value, start, end)):
        return start <= value <= end
    number = to_number(value)
    return to_number(start) <= number <= to_number(end)


def _is_empty(ops: Operands) -> bool:
    value = ops.value
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    if isinstance(value, list):
        return len(value) == 0
    return False


def _is_not_empty(ops: Operands) -> bool:
    return not _is_empty(ops)


def _includes_all(ops: Operands) -> bool:
    book_list = ops.book_list()
    return all(v in book_list for v in ops.rule_list)


def _excludes_all(ops: Operands) -> bool:
    book_list = ops.book_list()
    return all(v not in book_list for v in ops.rule_list)


def _includes_any(ops: Operands) -> bool:
    book_list = ops.book_list()
    return any(v in book_list for v in ops.rule_list)


def _threshold(ops: Operands):
    amount = to_number(ops.rule.value)
    if math.isnan(amount) or math.isinf(amount):
        return None
    unit = ops.rule.value_end if ops.rule.value_end is not None else 'days'
    try:
        return compute_date_threshold(amount, str(unit), ops.now)
    except (OverflowError, ValueError):
        return None


def _within_last(ops: Operands) -> bool:
    if not isinstance(ops.value, datetime):
        return False
    threshold = _threshold(ops)
    return threshold is not None and ops.value >= threshold


def _older_than(ops: Operands) -> bool:
    if not isinstance(ops.value, datetime):
        return False
    threshold = _threshold(ops)
    return threshold is not None and ops.value < threshold


def _this_period(ops: Operands) -> bool:
    if not isinstance(ops.value, datetime):
        return False
    period = ops.rule.value if ops.rule.value is not None else 'year'
    return ops.value >= start_of_period(str(period), ops.now)


OPERATORS: Dict[str, Callable[[Operands], bool]] = {
    'equals': _equals,
    'not_equals': _not_equals,
    'contains': _text_operator(lambda value, needle: needle in value),
    'does_not_contain': _text_operator(lambda value, needle: needle in value, negated=True),
    'starts_with': _text_operator(lambda value, needle: value.startswith(needle)),
    'ends_with': _text_operator(lambda value, needle: value.endswith(needle)),
    'greater_than': _compare(lambda a, b: a > b),
    'greater_than_equal_to': _compare(lambda a, b: a >= b),
    'less_than': _compare(lambda a, b: a < b),
    'less_than_equal_to': _compare(lambda a, b: a <= b),
    'in_between': _in_between,
    'is_empty': _is_empty,
    'is_not_empty': _is_not_empty,
    'includes_any': _includes_any,
    'includes_all': _includes_all,
    'excludes_all': _excludes_all,
    'within_last': _within_last,
    'older_than': _older_than,
    'this_period': _this_period,
}


def evaluate_operator(operator: str, ops: Operands) -> bool:
    """Apply ``operator`` to the operands; unknown operators fail closed."""
    handler = OPERATORS.get(operator)
    if handler is None:
        logger.debug(f"Unknown operator '{operator}' on field '{ops.rule.field}', rule excluded")
        return False
    return handler(ops)
