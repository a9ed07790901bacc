"""Field operators applied while transforming a record.

Operators follow an update-style vocabulary. Each operator is called as
``operator(record, field_name, argument)`` and mutates the record in place.
Numeric and array operators silently do nothing when the current value of
the field (or the argument) does not have the expected type.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict

Operator = Callable[[Dict[str, Any], str, Any], None]


class OperatorKind(str, Enum):
    """Built-in operator kinds, valued by their canonical names."""

    SET = "set"
    UNSET = "unset"
    RENAME = "rename"
    SET_DEFAULT = "setDefault"
    SET_IF_EMPTY = "setIfEmpty"
    UNSET_IF_EMPTY = "unsetIfEmpty"
    INCREMENT = "increment"
    MULTIPLY = "multiply"
    MIN = "min"
    MAX = "max"
    ADD_TO_SET = "addToSet"
    PUSH = "push"
    POP = "pop"
    PULL = "pull"
    PULL_ALL = "pullAll"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def set_value(record: Dict[str, Any], field: str, arg: Any) -> None:
    record[field] = arg


def unset(record: Dict[str, Any], field: str, arg: Any = None) -> None:
    record.pop(field, None)


def rename(record: Dict[str, Any], field: str, arg: Any) -> None:
    if field in record and arg != field:
        record[arg] = record.pop(field)


def set_default(record: Dict[str, Any], field: str, arg: Any) -> None:
    """Set the field only when the record does not have it."""
    if field not in record:
        record[field] = arg


def set_if_empty(record: Dict[str, Any], field: str, arg: Any) -> None:
    """Replace a present but empty (falsy) value."""
    if field in record and not record[field]:
        record[field] = arg


def unset_if_empty(record: Dict[str, Any], field: str, arg: Any = None) -> None:
    if field in record and not record[field]:
        del record[field]


def increment(record: Dict[str, Any], field: str, arg: Any) -> None:
    if _is_number(record.get(field)) and _is_number(arg):
        record[field] += arg


def multiply(record: Dict[str, Any], field: str, arg: Any) -> None:
    if _is_number(record.get(field)) and _is_number(arg):
        record[field] *= arg


def minimum(record: Dict[str, Any], field: str, arg: Any) -> None:
    if _is_number(record.get(field)) and _is_number(arg):
        record[field] = min(record[field], arg)


def maximum(record: Dict[str, Any], field: str, arg: Any) -> None:
    if _is_number(record.get(field)) and _is_number(arg):
        record[field] = max(record[field], arg)


def add_to_set(record: Dict[str, Any], field: str, arg: Any) -> None:
    values = record.get(field)
    if isinstance(values, list) and arg not in values:
        values.append(arg)


def push(record: Dict[str, Any], field: str, arg: Any) -> None:
    values = record.get(field)
    if isinstance(values, list):
        values.append(arg)


def pop(record: Dict[str, Any], field: str, arg: Any) -> None:
    """Remove the first (-1) or last (1) element of a list."""
    values = record.get(field)
    if not isinstance(values, list) or not values or isinstance(arg, bool):
        return
    if arg == -1:
        values.pop(0)
    elif arg == 1:
        values.pop()


def pull(record: Dict[str, Any], field: str, arg: Any) -> None:
    """Remove the first element equal to arg."""
    values = record.get(field)
    if isinstance(values, list) and arg in values:
        values.remove(arg)


def pull_all(record: Dict[str, Any], field: str, arg: Any) -> None:
    values = record.get(field)
    if isinstance(values, list) and isinstance(arg, list):
        record[field] = [value for value in values if value not in arg]


OPERATORS: Dict[OperatorKind, Operator] = {
    OperatorKind.SET: set_value,
    OperatorKind.UNSET: unset,
    OperatorKind.RENAME: rename,
    OperatorKind.SET_DEFAULT: set_default,
    OperatorKind.SET_IF_EMPTY: set_if_empty,
    OperatorKind.UNSET_IF_EMPTY: unset_if_empty,
    OperatorKind.INCREMENT: increment,
    OperatorKind.MULTIPLY: multiply,
    OperatorKind.MIN: minimum,
    OperatorKind.MAX: maximum,
    OperatorKind.ADD_TO_SET: add_to_set,
    OperatorKind.PUSH: push,
    OperatorKind.POP: pop,
    OperatorKind.PULL: pull,
    OperatorKind.PULL_ALL: pull_all,
}

# Update-style ($-prefixed) names accepted for the built-in operators
OPERATOR_ALIASES: Dict[str, OperatorKind] = {
    "$set": OperatorKind.SET,
    "$unset": OperatorKind.UNSET,
    "$rename": OperatorKind.RENAME,
    "$default": OperatorKind.SET_DEFAULT,
    "$setIfEmpty": OperatorKind.SET_IF_EMPTY,
    "$unsetIfEmpty": OperatorKind.UNSET_IF_EMPTY,
    "$inc": OperatorKind.INCREMENT,
    "$mul": OperatorKind.MULTIPLY,
    "$min": OperatorKind.MIN,
    "$max": OperatorKind.MAX,
    "$addToSet": OperatorKind.ADD_TO_SET,
    "$push": OperatorKind.PUSH,
    "$pop": OperatorKind.POP,
    "$pull": OperatorKind.PULL,
    "$pullAll": OperatorKind.PULL_ALL,
}


def operator_kind(name: str) -> OperatorKind | None:
    """Look up the built-in kind for an operator name or alias."""
    if name in OPERATOR_ALIASES:
        return OPERATOR_ALIASES[name]
    try:
        return OperatorKind(name)
    except ValueError:
        return None
