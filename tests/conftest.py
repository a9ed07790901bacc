"""Pytest configuration for dbmigrator tests."""

import asyncio
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add the package source to path for testing
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from dbmigrator import MigrationEngine, MigratorRegistry  # noqa: E402


@pytest.fixture(scope="session")
def event_loop_policy():
    """Set the event loop policy for the test session."""
    return asyncio.DefaultEventLoopPolicy()


@pytest.fixture
def registry():
    """Registry holding the built-in connectors, operators and functions."""
    return MigratorRegistry.with_defaults()


@pytest.fixture
def students():
    """Small source collection."""
    return [
        {"_id": 1, "name": "Ada", "age": 1},
        {"_id": 2, "name": "Grace", "age": 2},
        {"_id": 3, "name": "Linus", "age": 3},
    ]


@pytest_asyncio.fixture
async def engine(registry, students):
    """Engine connected to a memory source holding students and an empty memory target."""
    engine = MigrationEngine(registry=registry)
    await engine.connect_source("memory", {"database": "db_01", "collections": {"students": students}})
    await engine.connect_target("memory", {"database": "db_02"})
    yield engine
    await engine.close()
