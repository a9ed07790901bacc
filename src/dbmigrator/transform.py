"""Declarative record transformation.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any, TYPE_CHECKING

from .exceptions import TransformError
from .functions import function_name

if TYPE_CHECKING:
    from .registry import MigratorRegistry
    from .specs import Record, TransformSpec


class TransformPipeline:
    """Applies a TransformSpec to one record at a time.

    The pipeline owns a deep copy of each record it transforms, so the
    caller's record is never modified and no two records share state.

    For field mappings, fields and their operators are applied in declaration
    order. Arguments written as ``"fn.<name>"`` are resolved by calling the
    named function for every record; lists are resolved element by element.
    """

    def __init__(self, registry: MigratorRegistry):
        self.registry = registry

    def apply(self, record: Record, transform: TransformSpec) -> Record:
        """Transform a record.

        Args:
            record: Source record
            transform: Transform to apply

        Returns:
            The transformed record

        Raises:
            TransformError: If an operator is not registered, or an override
                or computed field fails
        """
        result = copy.deepcopy(record)

        if transform.override is not None:
            try:
                return transform.override(result)
            except Exception as e:
                raise TransformError(f"override function failed: {e}") from e

        for field_name, operators in transform.field_mapping.items():
            if callable(operators):
                try:
                    result[field_name] = operators(result)
                except Exception as e:
                    raise TransformError(f"computed value failed: {e}", field_name) from e
                continue

            if not isinstance(operators, Mapping):
                raise TransformError("operators should be a mapping", field_name)
            for operator, argument in operators.items():
                self.execute_operator(operator, result, field_name, argument)

        return result

    def execute_operator(self, operator: str, record: Record, field_name: str, argument: Any) -> None:
        """Resolve the argument and run one operator on a record."""
        fn = self.registry.operators.get_optional(operator)
        if fn is None:
            raise TransformError(f"Invalid operator - {operator}", field_name)
        fn(record, field_name, self.resolve(argument))

    def resolve(self, argument: Any) -> Any:
        """Resolve ``fn.*`` placeholders in an operator argument."""
        if isinstance(argument, list):
            return [self._resolve_value(value) for value in argument]
        return self._resolve_value(argument)

    def _resolve_value(self, value: Any) -> Any:
        name = function_name(value)
        if name is None:
            return value
        function = self.registry.functions.get_optional(name)
        if function is None:
            return value
        return function()

    def transform_many(self, records: list[Record], transform: TransformSpec) -> list[Record]:
        """Transform multiple records."""
        return [self.apply(record, transform) for record in records]

    def __repr__(self) -> str:
        return f"TransformPipeline(registry={self.registry!r})"
