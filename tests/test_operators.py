"""
Tests for the built-in field operators.
"""

import pytest

from dbmigrator.operators import (
    OPERATOR_ALIASES,
    OPERATORS,
    OperatorKind,
    add_to_set,
    increment,
    maximum,
    minimum,
    multiply,
    operator_kind,
    pop,
    pull,
    pull_all,
    push,
    rename,
    set_default,
    set_if_empty,
    set_value,
    unset,
    unset_if_empty,
)


class TestFieldOperators:
    """Test operators that add, remove or move fields."""

    def test_set_is_idempotent(self):
        """Applying set twice gives the same record as applying it once."""
        once = {"name": "Ada"}
        set_value(once, "status", "active")
        twice = {"name": "Ada"}
        set_value(twice, "status", "active")
        set_value(twice, "status", "active")

        assert once == twice == {"name": "Ada", "status": "active"}

    def test_unset_present_and_absent(self):
        record = {"name": "Ada", "old": 1}
        unset(record, "old", None)
        assert record == {"name": "Ada"}

        unset(record, "missing", None)
        assert record == {"name": "Ada"}

    def test_rename(self):
        record = {"old_name": "value", "other": "data"}
        rename(record, "old_name", "new_name")
        assert record == {"new_name": "value", "other": "data"}

    def test_rename_absent_field_does_not_create_target(self):
        record = {"other": "data"}
        rename(record, "old_name", "new_name")
        assert record == {"other": "data"}

    def test_rename_to_same_name_keeps_field(self):
        record = {"name": "Ada"}
        rename(record, "name", "name")
        assert record == {"name": "Ada"}

    def test_set_default(self):
        record = {"status": "inactive"}
        set_default(record, "status", "active")
        set_default(record, "role", "student")
        assert record == {"status": "inactive", "role": "student"}

    @pytest.mark.parametrize("empty", [None, 0, "", False, [], {}])
    def test_set_if_empty_replaces_empty_values(self, empty):
        record = {"value": empty}
        set_if_empty(record, "value", "filled")
        assert record == {"value": "filled"}

    def test_set_if_empty_ignores_absent_and_filled(self):
        record = {"value": "kept"}
        set_if_empty(record, "value", "filled")
        set_if_empty(record, "missing", "filled")
        assert record == {"value": "kept"}

    def test_unset_if_empty(self):
        record = {"empty": "", "full": "x"}
        unset_if_empty(record, "empty")
        unset_if_empty(record, "full")
        unset_if_empty(record, "missing")
        assert record == {"full": "x"}


class TestNumericOperators:
    """Test numeric operators and their type checks."""

    def test_increment_and_multiply(self):
        record = {"age": 10, "price": 2.5}
        increment(record, "age", 5)
        multiply(record, "price", 4)
        assert record == {"age": 15, "price": 10.0}

    def test_min_and_max(self):
        record = {"low": 10, "high": 10}
        minimum(record, "low", 3)
        maximum(record, "high", 30)
        minimum(record, "high", 50)
        assert record == {"low": 3, "high": 30}

    @pytest.mark.parametrize("operator", [increment, multiply, minimum, maximum])
    @pytest.mark.parametrize("value", ["10", None, [1], True])
    def test_non_numeric_value_unchanged(self, operator, value):
        record = {"field": value}
        operator(record, "field", 3)
        assert record == {"field": value}

    @pytest.mark.parametrize("operator", [increment, multiply, minimum, maximum])
    def test_non_numeric_argument_unchanged(self, operator):
        record = {"field": 7}
        operator(record, "field", "3")
        assert record == {"field": 7}

    def test_missing_field_not_created(self):
        record = {}
        increment(record, "count", 1)
        assert record == {}


class TestArrayOperators:
    """Test array operators."""

    def test_add_to_set_deduplicates(self):
        record = {"tags": ["a", "b"]}
        add_to_set(record, "tags", "b")
        add_to_set(record, "tags", "c")
        assert record == {"tags": ["a", "b", "c"]}

    def test_push(self):
        record = {"tags": ["a"]}
        push(record, "tags", "a")
        assert record == {"tags": ["a", "a"]}

    def test_pop_direction(self):
        record = {"values": [1, 2, 3]}
        pop(record, "values", -1)
        assert record == {"values": [2, 3]}
        pop(record, "values", 1)
        assert record == {"values": [2]}

    @pytest.mark.parametrize("direction", [0, 2, "1", True])
    def test_pop_invalid_direction(self, direction):
        record = {"values": [1, 2, 3]}
        pop(record, "values", direction)
        assert record == {"values": [1, 2, 3]}

    def test_pop_empty_list(self):
        record = {"values": []}
        pop(record, "values", 1)
        assert record == {"values": []}

    def test_pull_removes_first_match(self):
        record = {"values": [1, 2, 1]}
        pull(record, "values", 1)
        assert record == {"values": [2, 1]}

    def test_pull_all(self):
        record = {"values": [1, 2, 3, 1]}
        pull_all(record, "values", [1, 3])
        assert record == {"values": [2]}

    def test_pull_all_requires_list_argument(self):
        record = {"values": [1, 2]}
        pull_all(record, "values", 1)
        assert record == {"values": [1, 2]}

    @pytest.mark.parametrize("operator", [add_to_set, push, pop, pull, pull_all])
    def test_non_list_value_unchanged(self, operator):
        record = {"values": "not a list"}
        operator(record, "values", 1)
        assert record == {"values": "not a list"}


class TestOperatorLookup:
    """Test the operator kind table."""

    def test_every_kind_has_an_operator(self):
        assert set(OPERATORS) == set(OperatorKind)

    def test_every_alias_targets_a_kind(self):
        assert set(OPERATOR_ALIASES.values()) == set(OperatorKind)

    def test_operator_kind_lookup(self):
        assert operator_kind("set") is OperatorKind.SET
        assert operator_kind("$inc") is OperatorKind.INCREMENT
        assert operator_kind("$default") is OperatorKind.SET_DEFAULT
        assert operator_kind("explode") is None
