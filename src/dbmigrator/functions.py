"""Named value functions referenced from transforms as ``"fn.<name>"``.

A named function takes no arguments. It is called again for every record, so
values such as identifiers and timestamps are fresh each time.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict

NamedFunction = Callable[[], Any]

FUNCTION_PREFIX = "fn."


class FunctionKind(str, Enum):
    """Built-in named function kinds."""

    UUID_V1 = "uuid.v1"
    UUID_V4 = "uuid.v4"
    DATE = "date"


def uuid_v1() -> str:
    return str(uuid.uuid1())


def uuid_v4() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


FUNCTIONS: Dict[FunctionKind, NamedFunction] = {
    FunctionKind.UUID_V1: uuid_v1,
    FunctionKind.UUID_V4: uuid_v4,
    FunctionKind.DATE: utc_now,
}


def function_name(value: Any) -> str | None:
    """Return the function name of an ``"fn.<name>"`` placeholder, else None."""
    if isinstance(value, str) and value.startswith(FUNCTION_PREFIX):
        return value[len(FUNCTION_PREFIX):]
    return None
