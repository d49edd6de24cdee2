"""
Persistence format of rule groups.

Rule groups are stored as JSON text (a magic shelf's ``filterJson``):

    {"type": "group", "join": "and", "rules": [
        {"field": "addedOn", "operator": "in_between",
         "valueStart": "2024-01-01", "valueEnd": "2024-12-31"},
        {"field": "lastReadTime", "operator": "within_last",
         "value": 6, "valueEnd": "months"}
    ]}

Date-typed fields are written as ``YYYY-MM-DD`` under the absolute operators,
while the relative-date operators keep their raw amount and unit. ``None``
leaves are stripped before writing.
"""

import json
import logging
import math
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from .dates import parse_date, to_date_string
from .fields import DATE_FIELDS, FieldType, field_type
from .models import Group, Rule, RuleNode
from .operators import RELATIVE_DATE_OPERATORS

logger = logging.getLogger(__name__)

_VALUE_KEYS = (('value', 'value'), ('valueStart', 'value_start'), ('valueEnd', 'value_end'))


def parse_value(value: Any, value_type: Union[FieldType, str, None]) -> Any:
    """
    Parse a raw rule value according to the field's declared type.

    ``number``/``decimal`` give an int or float (empty text is 0, anything
    unparsable is None), ``date`` gives an aware datetime or None, and every
    other type returns the value unchanged.
    """
    if value is None:
        return None
    if isinstance(value_type, FieldType):
        value_type = value_type.value

    if value_type in ('number', 'decimal'):
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return None if math.isnan(value) else value
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return 0
            try:
                return int(text)
            except ValueError:
                pass
            try:
                number = float(text)
            except ValueError:
                return None
            return None if math.isnan(number) else number
        return None

    if value_type == 'date':
        return parse_date(value)

    return value


def _raw(data: Dict[str, Any], camel: str, snake: str) -> Any:
    return data[camel] if camel in data else data.get(snake)


def _parse_rule(data: Dict[str, Any]) -> Rule:
    field_name = data.get('field')
    operator = data.get('operator')
    if not isinstance(field_name, str) or not field_name:
        raise ValueError(f"Rule is missing a field: {data!r}")
    if not isinstance(operator, str) or not operator:
        raise ValueError(f"Rule on '{field_name}' is missing an operator")

    value, value_start, value_end = (_raw(data, camel, snake) for camel, snake in _VALUE_KEYS)

    if operator in RELATIVE_DATE_OPERATORS:
        if operator == 'this_period':
            return Rule(field_name, operator, value=value)
        return Rule(field_name, operator, value=parse_value(value, 'number'), value_end=value_end)

    declared = field_type(field_name)
    return Rule(
        field_name,
        operator,
        value=parse_value(value, declared),
        value_start=parse_value(value_start, declared),
        value_end=parse_value(value_end, declared),
    )


def parse_rule_node(data: Any) -> RuleNode:
    """Build a Rule or Group from decoded JSON."""
    if not isinstance(data, dict):
        raise ValueError(f"Expected a rule or group object, got {type(data).__name__}")

    if data.get('type') == 'group' or 'rules' in data:
        rules = data.get('rules') or []
        if not isinstance(rules, list):
            raise ValueError("Group 'rules' must be a list")
        join = data.get('join', 'and')
        if join not in ('and', 'or'):
            raise ValueError(f"Group join must be 'and' or 'or', got {join!r}")
        return Group(join=join, rules=[parse_rule_node(r) for r in rules], name=data.get('name'))

    return _parse_rule(data)


def parse_rule_group(data: Any) -> Group:
    """Build the root Group of a rule tree; a bare rule is wrapped in an AND group."""
    node = parse_rule_node(data)
    if isinstance(node, Rule):
        return Group(join='and', rules=[node])
    return node


def rule_group_to_dict(node: RuleNode) -> Dict[str, Any]:
    """Plain-dict form of a rule tree, values untouched."""
    if isinstance(node, Group):
        data: Dict[str, Any] = {'type': 'group', 'join': node.join}
        if node.name is not None:
            data['name'] = node.name
        data['rules'] = [rule_group_to_dict(child) for child in node.rules]
        return data
    if isinstance(node, Rule):
        return {
            'field': node.field,
            'operator': node.operator,
            'value': node.value,
            'valueStart': node.value_start,
            'valueEnd': node.value_end,
        }
    raise TypeError(f"Expected Rule or Group, got {type(node).__name__}")


def serialize_date_rules(node: Any) -> Any:
    """
    Write datetimes of date-typed fields as ``YYYY-MM-DD``.

    Relative-date operators keep their raw values. Works on the plain-dict
    form and recurses through groups; non-date fields are returned as is.
    """
    if not isinstance(node, dict):
        return node
    if isinstance(node.get('rules'), list):
        return {**node, 'rules': [serialize_date_rules(child) for child in node['rules']]}
    if node.get('field') in DATE_FIELDS and node.get('operator') not in RELATIVE_DATE_OPERATORS:
        out = dict(node)
        for key, _ in _VALUE_KEYS:
            if isinstance(out.get(key), date):
                out[key] = to_date_string(parse_date(out[key]))
        return out
    return node


def remove_nulls(obj: Any) -> Any:
    """Recursively drop None values from mappings; list positions are kept."""
    if isinstance(obj, dict):
        return {k: remove_nulls(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, list):
        return [remove_nulls(v) for v in obj]
    return obj


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_persisted_dict(group: Group) -> Dict[str, Any]:
    return remove_nulls(serialize_date_rules(rule_group_to_dict(group)))


def dumps_rule_group(group: Group, indent: Optional[int] = None) -> str:
    """Serialize a rule group to the persisted JSON text."""
    return json.dumps(to_persisted_dict(group), default=_json_default, indent=indent)


def loads_rule_group(text: str) -> Group:
    """
    Parse persisted JSON text into a rule group.

    Raises:
        ValueError: If the text is not JSON or not a valid rule tree
    """
    return parse_rule_group(json.loads(text))
