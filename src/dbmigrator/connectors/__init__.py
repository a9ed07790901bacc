"""Connector contract and built-in connectors."""

from typing import Any, Dict, Tuple, Type

from .base import Connector
from .memory import MemoryConnector


def builtin_connectors() -> Dict[str, Tuple[Type[Connector], Dict[str, Any]]]:
    """Built-in connector classes and their registration metadata, by name."""
    memory_metadata = {
        "description": "In-memory storage for testing and examples",
        "persistent": False,
        "config_options": {
            "database": "Database name (required)",
            "collections": "Optional initial data, {name: [records]}",
            "unique_key": "Field that must be unique per collection (default: _id)",
        },
    }
    return {
        "memory": (MemoryConnector, memory_metadata),
        "mem": (MemoryConnector, memory_metadata),
    }


__all__ = ["Connector", "MemoryConnector", "builtin_connectors"]
