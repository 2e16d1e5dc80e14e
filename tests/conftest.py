from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.hive_builder import HiveBuilder


@pytest.fixture
def hive(tmp_path: Path) -> HiveBuilder:
    """Provide a host repository rooted at the pytest tmp_path."""
    return HiveBuilder(tmp_path)
