"""Migration specifications.

A migration spec names a source, a target and a transform:

    ```python
    spec = MigrationSpec.from_dict({
        "name": "students",
        "source": {"collection": "students", "batch_size": 500},
        "target": {"collection": "students_copy"},
        "transform": {"_id": {"set": "fn.uuid.v4"}},
    })
    ```

The legacy keys ``from``, ``to`` and ``properties`` are accepted as aliases of
``source``, ``target`` and ``transform``. Values are stored as given so that
validation can report malformed specs instead of failing while parsing.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict

Record = Dict[str, Any]

DEFAULT_BATCH_SIZE = 1000

_BATCH_KEYS = ("batch_size", "batchSize", "batch")


@dataclass(frozen=True)
class SourceSpec:
    """Where records come from.

    Attributes:
        locator: Store-specific keys such as ``collection`` and ``query``
        batch_size: Records per fetch (None means the engine default)
        skip: Number of leading records to skip (None means 0)
    """

    locator: Dict[str, Any] = field(default_factory=dict)
    batch_size: Any = None
    skip: Any = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SourceSpec:
        locator = dict(data)
        batch_size = None
        for key in _BATCH_KEYS:
            if key in locator:
                batch_size = locator.pop(key)
        skip = locator.pop("skip", None)
        return cls(locator=locator, batch_size=batch_size, skip=skip)

    def get(self, key: str, default: Any = None) -> Any:
        return self.locator.get(key, default)

    def is_empty(self) -> bool:
        return not self.locator and self.batch_size is None and self.skip is None

    def describe(self) -> str:
        return str(self.locator.get("collection") or self.locator.get("table") or self.locator)


@dataclass(frozen=True)
class TargetSpec:
    """Where transformed records are stored."""

    locator: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TargetSpec:
        return cls(locator=dict(data))

    def get(self, key: str, default: Any = None) -> Any:
        return self.locator.get(key, default)

    def is_empty(self) -> bool:
        return not self.locator

    def describe(self) -> str:
        return str(self.locator.get("collection") or self.locator.get("table") or self.locator)


@dataclass(frozen=True)
class TransformSpec:
    """How each record is rewritten.

    Either ``override`` (a callable taking and returning a record) or
    ``fields`` (field name -> ``{operator: argument}``) is used; the override
    wins when both are present.
    """

    override: Callable[[Record], Record] | None = None
    fields: Any = None

    @classmethod
    def from_value(cls, value: Any) -> TransformSpec:
        if value is None:
            return cls(fields={})
        if callable(value):
            return cls(override=value)
        return cls(fields=value)

    @property
    def field_mapping(self) -> Mapping[str, Any]:
        return self.fields if isinstance(self.fields, Mapping) else {}


@dataclass(frozen=True)
class MigrationSpec:
    """A named source -> target migration."""

    name: str
    source: SourceSpec | None
    target: TargetSpec | None
    transform: TransformSpec = field(default_factory=TransformSpec)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], name: str | None = None) -> MigrationSpec:
        """Build a spec from a mapping.

        Args:
            data: Mapping with ``source``/``target``/``transform`` keys (or the
                ``from``/``to``/``properties`` aliases) and an optional ``name``
            name: Name used when the mapping has none

        Returns:
            The migration spec
        """
        source = _first(data, "source", "from")
        target = _first(data, "target", "to")
        transform = _first(data, "transform", "properties")
        spec_name = data.get("name") or name
        if not spec_name:
            source_name = source.get("collection") if isinstance(source, Mapping) else None
            spec_name = str(source_name or "migration")

        return cls(
            name=str(spec_name),
            source=SourceSpec.from_dict(source) if isinstance(source, Mapping) else None,
            target=TargetSpec.from_dict(target) if isinstance(target, Mapping) else None,
            transform=TransformSpec.from_value(transform),
        )

    def describe(self) -> str:
        source = self.source.describe() if self.source else "?"
        target = self.target.describe() if self.target else "?"
        return f"{source} => {target}"


def coerce_spec(value: MigrationSpec | Mapping[str, Any], index: int = 0) -> MigrationSpec:
    """Return value as a MigrationSpec, parsing mappings."""
    if isinstance(value, MigrationSpec):
        return value
    if isinstance(value, Mapping):
        return MigrationSpec.from_dict(value, name=f"migration_{index + 1}")
    raise TypeError(f"Expected a MigrationSpec or mapping, got {type(value).__name__}")


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None
