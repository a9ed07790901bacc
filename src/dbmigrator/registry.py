"""Registries for connectors, operators and named functions.

The generic ``Registry`` manages named items. Unregistering an item leaves an
explicit ``ABSENT`` marker behind instead of dropping the key, so a name that
was once known can be told apart from one that never was:

    ```python
    registry = Registry[Operator]("operators")
    registry.register("set", set_value)
    registry.unregister("set")
    registry.has("set")       # False
    registry.is_known("set")  # True
    ```

``MigratorRegistry`` groups the three registries a migration engine needs.
It is an explicit value owned by an engine; there is no module level
registry, so independent engines can coexist in one process. Registration
is expected to finish before a migration run starts.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Mapping
from typing import Any, Callable, Dict, Generic, List, Type, TypeVar

from .connectors import builtin_connectors
from .connectors.base import Connector
from .exceptions import NotFoundError, OperationError, RegistrationError
from .functions import FUNCTIONS, NamedFunction
from .operators import OPERATOR_ALIASES, OPERATORS, Operator

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _Absent:
    """Marker stored in place of an unregistered item."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT: Any = _Absent()


class Registry(Generic[T]):
    """Registry for managing named items with optional metrics.

    Args:
        name: Name for this registry instance
        enable_metrics: Whether to track registration metrics
    """

    def __init__(self, name: str, enable_metrics: bool = False):
        self._name = name
        self._items: Dict[str, T] = {}
        self._lock = threading.RLock()
        self._metrics: Dict[str, Dict[str, Any]] | None = {} if enable_metrics else None

    @property
    def name(self) -> str:
        """Get registry name."""
        return self._name

    def register(
        self,
        key: str,
        item: T,
        metadata: Dict[str, Any] | None = None,
        allow_overwrite: bool = False,
    ) -> None:
        """Register an item by key.

        An absent (previously unregistered) key can always be registered again.

        Args:
            key: Unique identifier for the item
            item: Item to register
            metadata: Optional metadata about the item
            allow_overwrite: Whether to allow overwriting existing items

        Raises:
            OperationError: If item already exists and allow_overwrite is False
        """
        with self._lock:
            if not allow_overwrite and self.has(key):
                raise OperationError(
                    f"Item '{key}' already registered in {self._name}",
                    context={"key": key, "registry": self._name},
                )

            self._items[key] = item

            if self._metrics is not None:
                self._metrics[key] = {
                    "registered_at": time.time(),
                    "metadata": metadata or {},
                }

    def unregister(self, key: str) -> T | None:
        """Mark an item as absent and return it.

        Unregistering an unknown or already absent key is a no-op.

        Args:
            key: Key of item to unregister

        Returns:
            The unregistered item, or None if nothing was registered
        """
        with self._lock:
            item = self._items.get(key, ABSENT)
            self._items[key] = ABSENT
            if self._metrics is not None:
                self._metrics.pop(key, None)
            return None if item is ABSENT else item

    def get(self, key: str) -> T:
        """Get an item by key.

        Raises:
            NotFoundError: If item not found or absent
        """
        with self._lock:
            item = self._items.get(key, ABSENT)
            if item is ABSENT:
                raise NotFoundError(
                    f"Item not found: {key}",
                    context={
                        "key": key,
                        "registry": self._name,
                        "available_keys": self.list_keys(),
                    },
                )
            return item

    def get_optional(self, key: str) -> T | None:
        """Get an item by key, returning None if not found."""
        with self._lock:
            item = self._items.get(key, ABSENT)
            return None if item is ABSENT else item

    def has(self, key: str) -> bool:
        """Check if a (non absent) item is registered under key."""
        with self._lock:
            return self._items.get(key, ABSENT) is not ABSENT

    def is_known(self, key: str) -> bool:
        """Check if key was ever registered, including absent entries."""
        with self._lock:
            return key in self._items

    def list_keys(self) -> List[str]:
        """List all registered (non absent) keys."""
        with self._lock:
            return [key for key, item in self._items.items() if item is not ABSENT]

    def items(self) -> List[tuple[str, T]]:
        """Get all registered key-item pairs."""
        with self._lock:
            return [(key, item) for key, item in self._items.items() if item is not ABSENT]

    def count(self) -> int:
        """Get count of registered items."""
        return len(self.list_keys())

    def clear(self) -> None:
        """Clear all items, including absent markers."""
        with self._lock:
            self._items.clear()
            if self._metrics is not None:
                self._metrics.clear()

    def get_metrics(self, key: str | None = None) -> Dict[str, Any]:
        """Get registration metrics."""
        with self._lock:
            if self._metrics is None:
                return {}
            if key:
                return self._metrics.get(key, {})
            return dict(self._metrics)

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __iter__(self):
        return iter([item for _, item in self.items()])

    def __repr__(self) -> str:
        return f"Registry(name={self._name!r}, items={self.count()})"


class MigratorRegistry:
    """Known connectors, operators and named functions of one engine.

    Example:
        ```python
        registry = MigratorRegistry.with_defaults()
        registry.register_function("tenant", lambda: "acme")
        registry.has_function("tenant")
        # True
        ```
    """

    def __init__(self) -> None:
        self.connectors: Registry[Type[Connector]] = Registry("connectors", enable_metrics=True)
        self.operators: Registry[Operator] = Registry("operators")
        self.functions: Registry[NamedFunction] = Registry("functions")

    @classmethod
    def with_defaults(cls) -> MigratorRegistry:
        """Create a registry holding the built-in connectors, operators and functions."""
        registry = cls()
        for name, (connector_class, metadata) in builtin_connectors().items():
            registry.register_connector(name, connector_class, metadata=metadata)
        registry.register_operators({kind.value: fn for kind, fn in OPERATORS.items()})
        registry.register_operators(
            {alias: OPERATORS[kind] for alias, kind in OPERATOR_ALIASES.items()}
        )
        registry.register_functions({kind.value: fn for kind, fn in FUNCTIONS.items()})
        return registry

    # Connectors

    def register_connector(
        self,
        name: str,
        connector_class: Type[Connector],
        metadata: Dict[str, Any] | None = None,
    ) -> None:
        if not (isinstance(connector_class, type) and issubclass(connector_class, Connector)):
            raise RegistrationError(
                f"Connector '{name}' must be a Connector subclass",
                context={"name": name, "value": repr(connector_class)},
            )
        logger.debug(f"Registering connector: {name}")
        self.connectors.register(name, connector_class, metadata=metadata, allow_overwrite=True)

    def register_connectors(self, connectors: Mapping[str, Type[Connector]]) -> None:
        for name, connector_class in connectors.items():
            self.register_connector(name, connector_class)

    def unregister_connector(self, name: str) -> None:
        self.connectors.unregister(name)

    def has_connector(self, name: str) -> bool:
        return self.connectors.has(name)

    def get_connector(self, name: str) -> Type[Connector]:
        return self.connectors.get(name)

    # Operators

    def register_operator(self, name: str, operator: Operator) -> None:
        _ensure_callable("Operator", name, operator)
        self.operators.register(name, operator, allow_overwrite=True)

    def register_operators(self, operators: Mapping[str, Operator]) -> None:
        for name, operator in operators.items():
            self.register_operator(name, operator)

    def unregister_operator(self, name: str) -> None:
        self.operators.unregister(name)

    def has_operator(self, name: str) -> bool:
        return self.operators.has(name)

    def get_operator(self, name: str) -> Operator:
        return self.operators.get(name)

    # Functions

    def register_function(self, name: str, function: NamedFunction) -> None:
        _ensure_callable("Function", name, function)
        self.functions.register(name, function, allow_overwrite=True)

    def register_functions(self, functions: Mapping[str, NamedFunction]) -> None:
        for name, function in functions.items():
            self.register_function(name, function)

    def unregister_function(self, name: str) -> None:
        self.functions.unregister(name)

    def has_function(self, name: str) -> bool:
        return self.functions.has(name)

    def get_function(self, name: str) -> NamedFunction:
        return self.functions.get(name)

    def load_module(self, module: Any) -> None:
        """Register the connectors, operators and functions a module contributes.

        Args:
            module: A Python module, object or mapping exposing optional
                ``connectors``, ``operators`` and ``functions`` mappings
        """
        name = _module_part(module, "name", None) or getattr(module, "__name__", repr(module))
        connectors = _module_part(module, "connectors", None) or {}
        operators = _module_part(module, "operators", None) or {}
        functions = _module_part(module, "functions", None) or {}

        logger.info(
            f"Loading module {name}: {len(connectors)} connectors, "
            f"{len(operators)} operators, {len(functions)} functions"
        )
        self.register_connectors(connectors)
        self.register_operators(operators)
        self.register_functions(functions)

    def __repr__(self) -> str:
        return (
            f"MigratorRegistry(connectors={len(self.connectors)}, "
            f"operators={len(self.operators)}, functions={len(self.functions)})"
        )


def _ensure_callable(kind: str, name: str, value: Callable | Any) -> None:
    if not callable(value):
        raise RegistrationError(
            f"{kind} '{name}' must be callable",
            context={"name": name, "value": repr(value)},
        )


def _module_part(module: Any, key: str, default: Any) -> Any:
    if isinstance(module, Mapping):
        return module.get(key, default)
    return getattr(module, key, default)
