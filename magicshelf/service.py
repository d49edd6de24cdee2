"""
Magic Shelf Service - High-level API over the rule and filter engines.

Provides entity scoping (library, shelf, magic shelf), a registry of magic
shelves, cascading facets for every sidebar dimension, and YAML
import/export of magic shelf definitions.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import yaml

from .config import EngineConfig
from .filters.facets import FILTER_CONFIGS, Facet, cascading_facets
from .filters.sidebar import filter_books_by_filters
from .models import Book, Group, Library, MagicShelf, Shelf
from .rules import RuleEvaluator
from .serialization import dumps_rule_group, loads_rule_group, parse_rule_group, to_persisted_dict

logger = logging.getLogger(__name__)

Entity = Union[Library, Shelf, MagicShelf, None]


class MagicShelfService:
    """
    Service for evaluating magic shelves and sidebar filters.

    Provides:
    - Registry of magic shelves (create, get, list, remove)
    - Scoping a book collection to a library, shelf or magic shelf
    - Cascading facets for every filter dimension
    - Import/export of magic shelf definitions as YAML
    """

    def __init__(self, config: Optional[EngineConfig] = None, evaluator: Optional[RuleEvaluator] = None):
        self.config = config or EngineConfig()
        self.evaluator = evaluator or RuleEvaluator()
        self._shelves: Dict[str, MagicShelf] = {}
        self._next_id = 1

    # =========================================================================
    # Registry
    # =========================================================================

    def create(self, name: str, group: Group, icon: Optional[str] = None) -> MagicShelf:
        """
        Register a new magic shelf for a rule group.

        Raises:
            ValueError: If a shelf with this name already exists
        """
        if name in self._shelves:
            raise ValueError(f"Magic shelf '{name}' already exists")

        shelf = MagicShelf(id=self._next_id, name=name, filter_json=dumps_rule_group(group), icon=icon)
        self._next_id += 1
        self._shelves[name] = shelf
        logger.debug(f"Created magic shelf '{name}'")
        return shelf

    def add(self, shelf: MagicShelf, overwrite: bool = False) -> MagicShelf:
        """Register an existing magic shelf, e.g. one loaded from the server."""
        if shelf.name in self._shelves and not overwrite:
            raise ValueError(f"Magic shelf '{shelf.name}' already exists. Use overwrite=True to replace.")
        if shelf.id is None:
            shelf.id = self._next_id
        self._next_id = max(self._next_id, shelf.id + 1)
        self._shelves[shelf.name] = shelf
        return shelf

    def get(self, name: str) -> Optional[MagicShelf]:
        return self._shelves.get(name)

    def list(self) -> List[MagicShelf]:
        return sorted(self._shelves.values(), key=lambda s: s.name.lower())

    def remove(self, name: str) -> bool:
        """Remove a shelf; returns False when it did not exist."""
        return self._shelves.pop(name, None) is not None

    def rule_group(self, shelf: MagicShelf) -> Optional[Group]:
        """The parsed rule group of a shelf, None when missing or invalid."""
        if not shelf.filter_json:
            return None
        try:
            return loads_rule_group(shelf.filter_json)
        except ValueError as e:
            logger.warning(f"Invalid filter JSON for magic shelf '{shelf.name}': {e}")
            return None

    # =========================================================================
    # Evaluation
    # =========================================================================

    def filter_by_magic_shelf(self, books: Sequence[Book], shelf: MagicShelf) -> List[Book]:
        group = self.rule_group(shelf)
        if group is None:
            return []
        return self.evaluator.filter(books, group)

    def filter_books_by_entity(self, books: Sequence[Book], entity: Entity) -> List[Book]:
        """Books belonging to a library, shelf or magic shelf; all books when no entity."""
        if entity is None:
            return list(books)
        if isinstance(entity, Library):
            return [b for b in books if b.library_id == entity.id]
        if isinstance(entity, Shelf):
            return [b for b in books if any(s.id == entity.id for s in b.shelves)]
        if isinstance(entity, MagicShelf):
            return self.filter_by_magic_shelf(books, entity)
        raise TypeError(f"Unsupported entity type: {type(entity).__name__}")

    def visible_books(
        self,
        books: Sequence[Book],
        entity: Entity = None,
        active_filters: Optional[Mapping[str, Sequence[Any]]] = None,
        mode: Optional[str] = None,
    ) -> List[Book]:
        """Books of an entity that pass the sidebar filters."""
        scoped = self.filter_books_by_entity(books, entity)
        return list(filter_books_by_filters(scoped, active_filters, mode or self.config.default_filter_mode))

    def facet_panel(
        self,
        books: Sequence[Book],
        active_filters: Optional[Mapping[str, Sequence[Any]]] = None,
        mode: Optional[str] = None,
        libraries: Iterable[Library] = (),
        entity: Entity = None,
        dimensions: Optional[Iterable[str]] = None,
    ) -> Dict[str, List[Facet]]:
        """
        Cascading facets for each dimension.

        Args:
            books: The whole collection
            active_filters: Currently selected filter values
            mode: Filter mode, defaults to the configured mode
            libraries: Known libraries, used to name library facets
            entity: Optional library/shelf/magic shelf scope
            dimensions: Dimensions to compute, all of them by default

        Returns:
            Mapping of dimension to its sorted facets
        """
        scoped = self.filter_books_by_entity(books, entity)
        mode = mode or self.config.default_filter_mode
        names = {lib.id: lib.name for lib in libraries if lib.id is not None and lib.name}
        return {
            dimension: cascading_facets(
                scoped,
                dimension,
                active_filters,
                mode,
                limit=self.config.max_facet_items,
                library_names=names,
            )
            for dimension in (dimensions or FILTER_CONFIGS)
        }

    # =========================================================================
    # Import/Export
    # =========================================================================

    def export_yaml(self, name: str) -> str:
        """
        Export a magic shelf definition as YAML.

        Raises:
            ValueError: If the shelf is unknown or its rules do not parse
        """
        shelf = self.get(name)
        if not shelf:
            raise ValueError(f"Magic shelf '{name}' not found")
        group = self.rule_group(shelf)
        if group is None:
            raise ValueError(f"Magic shelf '{name}' has no valid rules")

        data: Dict[str, Any] = {'name': shelf.name}
        if shelf.icon:
            data['icon'] = shelf.icon
        data['rules'] = to_persisted_dict(group)
        return yaml.dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)

    def import_yaml(self, yaml_content: str, overwrite: bool = False) -> MagicShelf:
        """
        Import a magic shelf from YAML.

        Raises:
            ValueError: If the YAML lacks a name or valid rules
        """
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML: {e}") from e

        if not isinstance(data, dict) or not data.get('name'):
            raise ValueError("Magic shelf YAML must include 'name' field")
        if 'rules' not in data:
            raise ValueError("Magic shelf YAML must include 'rules' field")

        group = parse_rule_group(data['rules'])
        name = data['name']
        existing = self.get(name)
        shelf = MagicShelf(
            id=existing.id if existing else None,
            name=name,
            filter_json=dumps_rule_group(group),
            icon=data.get('icon'),
        )
        return self.add(shelf, overwrite=overwrite)

    def export_json(self, name: str) -> str:
        shelf = self.get(name)
        if not shelf:
            raise ValueError(f"Magic shelf '{name}' not found")
        return json.dumps({
            'id': shelf.id,
            'name': shelf.name,
            'icon': shelf.icon,
            'filterJson': shelf.filter_json,
        }, indent=2)
