from __future__ import annotations

import pytest

from rankovo.store.repository import reset_repository


@pytest.fixture(autouse=True)
def _fresh_repository():
    """Every test starts from the seed data."""
    reset_repository()
    yield
    reset_repository()
