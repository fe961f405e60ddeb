from __future__ import annotations

import pytest

from provisio.resource import Registry
from provisio.state import MemoryStateStore


@pytest.fixture
def registry() -> Registry:
    return Registry()


@pytest.fixture
def store() -> MemoryStateStore:
    return MemoryStateStore()
