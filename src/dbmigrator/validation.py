"""Static validation of migration specs.

Validation never raises for a malformed spec. Every problem is collected
and returned, and the caller decides whether to go ahead.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, TYPE_CHECKING

from .exceptions import ValidationIssue
from .functions import function_name
from .specs import MigrationSpec, coerce_spec

if TYPE_CHECKING:
    from .connectors.base import Connector
    from .registry import MigratorRegistry
    from .specs import SourceSpec, TargetSpec, TransformSpec

logger = logging.getLogger(__name__)


def is_positive_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def is_non_negative_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


class ValidationService:
    """Checks migration specs against a registry and the bound connectors.

    Args:
        registry: Registry used to resolve operator and function names
        source_connector: Connected source connector, if any
        target_connector: Connected target connector, if any
    """

    def __init__(
        self,
        registry: MigratorRegistry,
        source_connector: Connector | None = None,
        target_connector: Connector | None = None,
    ):
        self.registry = registry
        self.source_connector = source_connector
        self.target_connector = target_connector

    def validate(self, specs: Sequence[MigrationSpec | Mapping[str, Any]]) -> list[ValidationIssue]:
        """Validate a sequence of migration specs.

        Args:
            specs: Migration specs, or mappings accepted by MigrationSpec.from_dict

        Returns:
            Every issue found, in spec order (empty when all specs are valid)
        """
        if not specs:
            return [ValidationIssue.empty_migrator()]

        issues: list[ValidationIssue] = []
        for index, value in enumerate(specs):
            try:
                spec = coerce_spec(value, index)
            except TypeError:
                spec = MigrationSpec(name=f"migration_{index + 1}", source=None, target=None)
            issues.extend(self.validate_spec(spec))

        if issues:
            logger.warning(f"Validation found {len(issues)} issue(s) in {len(specs)} migration(s)")
            for issue in issues:
                logger.debug(f"Validation issue: {issue}")
        return issues

    def validate_spec(self, spec: MigrationSpec) -> list[ValidationIssue]:
        """Validate a single migration spec."""
        return (
            self._validate_source(spec.source, spec.name)
            + self._validate_target(spec.target, spec.name)
            + self._validate_transform(spec.transform, spec.name)
        )

    def _validate_source(self, source: SourceSpec | None, name: str) -> list[ValidationIssue]:
        if source is None or source.is_empty():
            return [ValidationIssue.invalid_from(name)]

        issues = []
        if self.source_connector is None:
            issues.append(ValidationIssue.invalid_connector("source"))
        else:
            issues.extend(self.source_connector.validate_source_spec(source))

        if source.batch_size is not None and not is_positive_integer(source.batch_size):
            issues.append(ValidationIssue.invalid_batch(source.batch_size, name))
        if source.skip is not None and not is_non_negative_integer(source.skip):
            issues.append(ValidationIssue.invalid_skip(source.skip, name))
        return issues

    def _validate_target(self, target: TargetSpec | None, name: str) -> list[ValidationIssue]:
        if target is None or target.is_empty():
            return [ValidationIssue.invalid_to(name)]
        if self.target_connector is None:
            return [ValidationIssue.invalid_connector("target")]
        return list(self.target_connector.validate_target_spec(target))

    def _validate_transform(self, transform: TransformSpec, name: str) -> list[ValidationIssue]:
        if transform.override is not None:
            if callable(transform.override):
                return []
            return [ValidationIssue.invalid_properties(name)]

        fields = transform.fields
        if fields is None:
            return []
        if not isinstance(fields, Mapping):
            return [ValidationIssue.invalid_properties(name)]

        issues = []
        for field_name, operators in fields.items():
            if callable(operators):
                continue
            if not isinstance(operators, Mapping) or not operators:
                issues.append(ValidationIssue.invalid_property(field_name, name))
                continue

            for operator, argument in operators.items():
                if not self.registry.has_operator(operator):
                    issues.append(ValidationIssue.invalid_operator(operator, name))
                issues.extend(self._validate_argument(argument, name))
        return issues

    def _validate_argument(self, argument: Any, name: str) -> list[ValidationIssue]:
        values = argument if isinstance(argument, list) else [argument]
        issues = []
        for value in values:
            fn = function_name(value)
            if fn is not None and not self.registry.has_function(fn):
                issues.append(ValidationIssue.invalid_function(fn, name))
        return issues
