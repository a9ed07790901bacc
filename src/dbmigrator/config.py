"""Engine configuration and migration file loading.

Configuration can come from a dictionary, a YAML or JSON file, or environment
variables. String values may reference environment variables:

- ``${VAR}`` - replaced with VAR, error if not set
- ``${VAR:default}`` / ``${VAR:-default}`` - replaced with VAR or the default

Example configuration file:

    ```yaml
    ignore_duplicates: ${IGNORE_DUPLICATES:false}
    default_batch_size: 500
    migrations:
      - name: students
        source: {collection: students}
        target: {collection: students_copy}
        transform:
          _id: {set: fn.uuid.v4}
    ```
"""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Union

import yaml

from .exceptions import ConfigurationError
from .specs import DEFAULT_BATCH_SIZE, MigrationSpec

logger = logging.getLogger(__name__)

ENV_PREFIX = "DBMIGRATOR_"


class VariableSubstitution:
    """Handles environment variable substitution in configuration values."""

    # Pattern to match ${VAR} or ${VAR:default} or ${VAR:-default}
    VAR_PATTERN = re.compile(r'\$\{([^}:]+)(?::(-)?([^}]*))?\}')

    def substitute(self, value: Any) -> Any:
        """Recursively substitute environment variables in a value.

        Raises:
            ConfigurationError: If a required environment variable is not set
        """
        if isinstance(value, str):
            return self._substitute_string(value)
        elif isinstance(value, dict):
            return {key: self.substitute(item) for key, item in value.items()}
        elif isinstance(value, list):
            return [self.substitute(item) for item in value]
        return value

    def _lookup(self, match: re.Match) -> str:
        var_name = match.group(1)
        has_default = match.group(2) is not None or match.group(3) is not None
        if var_name in os.environ:
            return os.environ[var_name]
        if has_default:
            return match.group(3) or ""
        raise ConfigurationError(
            f"Environment variable '{var_name}' not found", context={"variable": var_name}
        )

    def _substitute_string(self, text: str) -> Union[str, int, float, bool]:
        # A string that is exactly one reference may become a non-string
        match = self.VAR_PATTERN.fullmatch(text)
        if match:
            return convert_type(self._lookup(match))
        return self.VAR_PATTERN.sub(self._lookup, text)


def convert_type(value: str) -> Union[str, int, float, bool]:
    """Convert a string to bool, int or float when it looks like one."""
    lowered = value.lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


@dataclass(frozen=True)
class EngineConfig:
    """Options recognized by the migration engine.

    Attributes:
        ignore_duplicates: Count target duplicate-key errors as ignored
            instead of failing the run
        default_batch_size: Batch size used when a source spec sets none
        max_concurrent_writes: Upper bound on concurrent writes within a
            batch (None means every record of the batch at once)
    """

    ignore_duplicates: bool = False
    default_batch_size: int = DEFAULT_BATCH_SIZE
    max_concurrent_writes: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.ignore_duplicates, bool):
            raise ConfigurationError(
                "ignore_duplicates should be a boolean",
                context={"parameter": "ignore_duplicates", "value": self.ignore_duplicates},
            )
        if not _positive_int(self.default_batch_size):
            raise ConfigurationError(
                "default_batch_size should be a positive integer",
                context={"parameter": "default_batch_size", "value": self.default_batch_size},
            )
        if self.max_concurrent_writes is not None and not _positive_int(self.max_concurrent_writes):
            raise ConfigurationError(
                "max_concurrent_writes should be a positive integer",
                context={"parameter": "max_concurrent_writes", "value": self.max_concurrent_writes},
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> EngineConfig:
        """Create from a config dictionary, ignoring unrelated keys."""
        data = VariableSubstitution().substitute(dict(data or {}))
        known = {f.name for f in fields(cls)}
        if "ignoreDuplicates" in data and "ignore_duplicates" not in data:
            data["ignore_duplicates"] = data["ignoreDuplicates"]
        return cls(**{key: value for key, value in data.items() if key in known})

    @classmethod
    def from_file(cls, path: str | Path) -> EngineConfig:
        """Create from a YAML or JSON file."""
        data = load_document(path)
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                "Configuration file should contain a mapping", context={"path": str(path)}
            )
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> EngineConfig:
        """Create from environment variables such as DBMIGRATOR_IGNORE_DUPLICATES."""
        data = {}
        for f in fields(cls):
            value = os.environ.get(f"{prefix}{f.name.upper()}")
            if value is not None:
                data[f.name] = convert_type(value)
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_document(path: str | Path) -> Any:
    """Load a YAML or JSON document and substitute environment variables."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"File not found: {path}", context={"path": str(path)})

    try:
        with open(path) as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Failed to load {path}: {e}", context={"path": str(path)}
        ) from e

    logger.debug(f"Loaded configuration from {path}")
    return VariableSubstitution().substitute(data)


def load_migrations(path: str | Path) -> list[MigrationSpec]:
    """Load migration specs from a YAML or JSON file.

    The document is either a list of migration mappings, a mapping with a
    ``migrations`` key holding such a list, or a mapping of migration name to
    migration mapping.
    """
    data = load_document(path)
    if isinstance(data, Mapping) and "migrations" in data:
        data = data["migrations"]

    if isinstance(data, Mapping):
        entries = [(str(name), value) for name, value in data.items()]
    elif isinstance(data, list):
        entries = [(f"migration_{index + 1}", value) for index, value in enumerate(data)]
    else:
        raise ConfigurationError(
            "Migrations file should contain a list or mapping of migrations",
            context={"path": str(path)},
        )

    specs = []
    for name, value in entries:
        if not isinstance(value, Mapping):
            raise ConfigurationError(
                f"Migration '{name}' should be a mapping",
                context={"path": str(path), "migration": name},
            )
        specs.append(MigrationSpec.from_dict(value, name=name))
    return specs


def _positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0
