import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml
from jmespath import search

from .models import Book, Group, Library
from .serialization import parse_rule_group

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_document(path: PathLike) -> Any:
    """
    Read a JSON or YAML document.

    YAML is used for ``.yaml``/``.yml`` files, JSON for everything else.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the content cannot be decoded
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    text = path.read_text(encoding='utf-8')
    if path.suffix.lower() in ('.yaml', '.yml'):
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"Error decoding YAML from {path}: {e}") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Error decoding JSON from {path}: {e}") from e


def load_books(path: PathLike, select: Optional[str] = None) -> List[Book]:
    """
    Load books from a JSON document.

    Args:
        path: File holding a list of books, or an object with a ``books`` list
        select: Optional JMESPath expression selecting the list of books,
            e.g. ``"content[?libraryId == `2`]"``

    Returns:
        List of Book
    """
    data = read_document(path)
    if select:
        data = search(select, data)
    elif isinstance(data, dict) and 'books' in data:
        data = data['books']

    if not isinstance(data, list):
        raise ValueError(f"Expected a list of books in {path}, got {type(data).__name__}")

    books = [
        Book.from_dict(item) for item in data
        if isinstance(item, dict) and item.get('id') is not None
    ]
    skipped = len(data) - len(books)
    if skipped:
        logger.warning(f"Skipped {skipped} entries in {path} that are not book objects with an id")
    logger.debug(f"Loaded {len(books)} books from {path}")
    return books


def load_libraries(path: PathLike) -> List[Library]:
    """Load ``[{id, name}, ...]`` library descriptions."""
    data = read_document(path)
    if isinstance(data, dict) and 'libraries' in data:
        data = data['libraries']
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of libraries in {path}")
    return [Library(id=item.get('id'), name=item.get('name')) for item in data if isinstance(item, dict)]


def load_rule_group(path: PathLike) -> Group:
    """
    Load a rule group from JSON or YAML.

    A magic shelf document (with ``filterJson`` or ``rules``) is accepted as
    well as a bare group.
    """
    data = read_document(path)
    if isinstance(data, dict) and isinstance(data.get('filterJson'), str):
        try:
            data = json.loads(data['filterJson'])
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid filterJson in {path}: {e}") from e
    elif isinstance(data, dict) and isinstance(data.get('rules'), dict):
        data = data['rules']
    return parse_rule_group(data)
