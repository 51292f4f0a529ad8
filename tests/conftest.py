# tests/conftest.py
from __future__ import annotations

import math
import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    # Ensure `niceranking/src` is importable when running tests from the repo root.
    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"
    if src_dir.exists():
        sys.path.insert(0, str(src_dir))


@pytest.fixture
def people_rows() -> list[dict]:
    """Three people; the last one has no age."""
    return [
        {"name": "Alice", "age": 30, "team": "A", "active": True},
        {"name": "bob", "age": 20, "team": "B", "active": False},
        {"name": "Carol", "age": math.nan, "team": "A", "active": True},
    ]


@pytest.fixture
def people_descs():
    from niceranking.model.interfaces import ColumnDesc

    return [
        ColumnDesc(type="string", label="Name", column="name"),
        ColumnDesc(type="number", label="Age", column="age", domain=(0, 100)),
        ColumnDesc(type="categorical", label="Team", column="team", categories=("A", "B")),
        ColumnDesc(type="boolean", label="Active", column="active"),
    ]


@pytest.fixture
def provider(people_rows, people_descs):
    from niceranking.provider.local_data_provider import LocalDataProvider

    return LocalDataProvider(people_rows, people_descs)


@pytest.fixture
def ranking(provider):
    """A ranking holding one column per description: name, age, team, active."""
    r = provider.push_ranking()
    for desc in provider.columns:
        provider.push(r, desc)
    return r


@pytest.fixture
def recorder():
    """Collects ModelEvents; ``recorder.types`` lists the fired channel names."""

    class Recorder:
        def __init__(self) -> None:
            self.events = []

        def __call__(self, event) -> None:
            self.events.append(event)

        @property
        def types(self) -> list[str]:
            return [e.type.value for e in self.events]

        def clear(self) -> None:
            self.events.clear()

    return Recorder()
