"""
Query-string encoding of the active filter map.

    author:Frank Herbert|Brian Herbert,tag:sci-fi

Dimensions are separated by ``,``, a dimension's key from its values by the
first ``:`` and multiple values by ``|``. Decoding skips segments without a
key or without values instead of failing.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .facets import NUMERIC_ID_FILTER_TYPES

logger = logging.getLogger(__name__)


def serialize_filters(filters: Mapping[str, Sequence[Any]]) -> str:
    return ','.join(
        f"{key}:{'|'.join(str(v) for v in values)}"
        for key, values in filters.items()
    )


def deserialize_filters(filter_param: Optional[str]) -> Dict[str, List[str]]:
    parsed: Dict[str, List[str]] = {}
    if not filter_param:
        return parsed

    for pair in filter_param.split(','):
        key, sep, value = pair.partition(':')
        key = key.strip()
        if not sep or not key or not value:
            logger.debug(f"Skipping malformed filter segment '{pair}'")
            continue
        values = [v.strip() for v in value.split('|') if v.strip()]
        if values:
            parsed[key] = values

    return parsed


def process_filter_value(key: str, value: Any) -> Any:
    """Convert a string id of a numeric-id dimension to a number; other values pass through."""
    if key in NUMERIC_ID_FILTER_TYPES and isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            try:
                return float(value)
            except ValueError:
                return value
    return value


def process_filters(filters: Mapping[str, Sequence[Any]]) -> Dict[str, List[Any]]:
    return {key: [process_filter_value(key, v) for v in values] for key, values in filters.items()}


def apply_filter_mode(mode: str, filters: Mapping[str, Sequence[Any]]) -> Dict[str, List[Any]]:
    """
    Filters to keep after switching to ``mode``.

    ``single`` allows one selected value at most, so a selection spanning
    several values or dimensions is cleared.
    """
    if mode == 'single':
        selected = sum(len(values) for values in filters.values())
        if len(filters) > 1 or selected > 1:
            return {}
    return {key: list(values) for key, values in filters.items()}
