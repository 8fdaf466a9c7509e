"""
Shared test setup: run against the in-memory registry unless told otherwise.
"""

import os

import pytest

os.environ.setdefault("REGISTRY_BACKEND", "memory")
os.environ.setdefault("ENVIRONMENT", "development")

from config import get_settings  # noqa: E402
from registry.memory_storage import InMemoryParticipantRepository  # noqa: E402

get_settings.cache_clear()


@pytest.fixture
def repository():
    """Fresh in-memory participant registry."""
    return InMemoryParticipantRepository()
